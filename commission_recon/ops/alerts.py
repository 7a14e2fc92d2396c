"""Alert fan-out to the configured notification channels."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

from commission_recon.core.metrics import notifications_total
from commission_recon.ops.anomaly import AnomalyCheck
from commission_recon.ops.sinks import Sink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryOutcome:
    channel: str
    ok: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def format_alert_message(check: AnomalyCheck, source: str) -> str:
    """Build the alert text shared by all channels."""
    return (
        f"[{source}] {check.metric_name} = {check.metric_value:g} "
        f"exceeds threshold {check.threshold:g}\n"
        f"metric: {check.metric_name}\n"
        f"value: {check.metric_value}\n"
        f"threshold: {check.threshold}"
    )


async def _deliver(sink: Sink, check: AnomalyCheck, message: str) -> DeliveryOutcome:
    channel = getattr(sink, "channel", type(sink).__name__)
    try:
        await sink.send(check, message)
    except Exception as e:
        logger.exception(
            f"Failed to deliver alert via {channel}: {e}",
            extra={"channel": channel, "metric": check.metric_name},
        )
        notifications_total.labels(channel=channel, outcome="failure").inc()
        return DeliveryOutcome(channel=channel, ok=False, error=f"{type(e).__name__}: {e}")

    logger.info(
        f"Alert delivered via {channel}",
        extra={"channel": channel, "metric": check.metric_name},
    )
    notifications_total.labels(channel=channel, outcome="success").inc()
    return DeliveryOutcome(channel=channel, ok=True)


async def notify(
    check: AnomalyCheck,
    sinks: Iterable[Sink],
    source: str = "commission-recon",
) -> list[DeliveryOutcome]:
    """Send an exceeded check to every sink, once each, concurrently.

    Returns:
        One outcome per sink in the given order; empty when the check did not
        exceed its threshold. Delivery failures are reported, never raised.

    """
    sinks = list(sinks)
    if not check.exceeded:
        logger.debug(f"{check.metric_name} within threshold, no alert")
        return []
    if not sinks:
        logger.warning("No alert channels configured, alert not delivered")
        return []

    message = format_alert_message(check, source)
    outcomes = await asyncio.gather(*(_deliver(s, check, message) for s in sinks))

    failed = [o.channel for o in outcomes if not o.ok]
    if failed:
        logger.warning(f"Alert delivery failed for channels: {failed}")
    return list(outcomes)
