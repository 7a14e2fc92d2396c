"""Bounded status polling for external jobs and experiments."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Collection
from typing import TypeVar

from commission_recon.core.logging import get_logger
from commission_recon.core.metrics import poll_attempts_total

log = get_logger("commission_recon.polling")

S = TypeVar("S")


class PollTimeoutError(TimeoutError):
    """Status never left the in-progress set within the allowed attempts/time."""

    def __init__(self, target: str, last_status: object, attempts: int) -> None:
        self.target = target
        self.last_status = last_status
        self.attempts = attempts
        super().__init__(
            f"{target} still {last_status!r} after {attempts} poll(s)"
        )


async def poll_until_ready(
    status_fetch: Callable[[], Awaitable[S]],
    in_progress_values: Collection[S],
    interval: float,
    *,
    max_attempts: int | None = None,
    timeout: float | None = None,
    target: str = "job",
) -> S:
    """Poll ``status_fetch`` until it returns a status outside ``in_progress_values``.

    Args:
        status_fetch: Async callable returning the current status
        in_progress_values: Statuses meaning "still running"
        interval: Seconds to sleep between polls (fixed, no backoff)
        max_attempts: Maximum number of polls
        timeout: Deadline in seconds measured from the first poll
        target: Label for logs and metrics

    Returns:
        The first terminal status observed

    Raises:
        ValueError: If neither max_attempts nor timeout is given, or either is not positive
        PollTimeoutError: If the limit is reached while still in progress
        Exception: Whatever ``status_fetch`` raises is propagated unchanged

    """
    if max_attempts is None and timeout is None:
        raise ValueError("poll_until_ready needs max_attempts or timeout")
    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if timeout is not None and timeout <= 0:
        raise ValueError("timeout must be > 0")
    if interval < 0:
        raise ValueError("interval must be >= 0")

    deadline = time.monotonic() + timeout if timeout is not None else None
    attempts = 0

    while True:
        attempts += 1
        status = await status_fetch()
        poll_attempts_total.labels(target=target).inc()
        log.info("poll_status", extra={"target": target, "status": str(status), "attempt": attempts})

        if status not in in_progress_values:
            return status

        if max_attempts is not None and attempts >= max_attempts:
            raise PollTimeoutError(target, status, attempts)
        if deadline is not None and time.monotonic() + interval > deadline:
            raise PollTimeoutError(target, status, attempts)

        await asyncio.sleep(interval)
