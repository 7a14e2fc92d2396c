"""Unified async HTTP client for collaborator REST APIs.

Every call is attempted once: failures surface as ``UpstreamError`` and the
caller decides what to do with them.
"""

from __future__ import annotations

import json
import time
from collections.abc import Mapping
from typing import Any

import aiohttp

from commission_recon.core.logging import get_logger
from commission_recon.core.metrics import external_api_duration_seconds, external_api_requests_total

log = get_logger("commission_recon.http")

DEFAULT_TIMEOUT = 30


class UpstreamError(RuntimeError):
    """External service call failed (transport error or non-2xx status)."""

    def __init__(self, service: str, message: str, status: int | None = None) -> None:
        self.service = service
        self.status = status
        prefix = f"{service} HTTP {status}" if status is not None else service
        super().__init__(f"{prefix}: {message}")


class BaseHTTPClient:
    """Base HTTP client with timeout, structured logging and metrics."""

    service = "http"

    def __init__(
        self,
        base_url: str,
        default_headers: Mapping[str, str] | None = None,
        timeout_sec: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize HTTP client.

        Args:
            base_url: Base URL for all requests
            default_headers: Headers to include in all requests
            timeout_sec: Request timeout in seconds

        """
        self.base_url = base_url.rstrip("/")
        self.default_headers = dict(default_headers or {})
        self.timeout_sec = timeout_sec
        self._session: aiohttp.ClientSession | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if not self._session or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_sec)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> tuple[int, str]:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: URL path (relative to base_url)
            headers: Additional headers
            params: Query parameters
            json_body: JSON body for request

        Returns:
            (status, body text) for 2xx responses

        Raises:
            UpstreamError: On transport failure or non-2xx status

        """
        url = f"{self.base_url}{path}"
        hdrs = dict(self.default_headers)
        if headers:
            hdrs.update(headers)

        session = await self._ensure_session()
        t0 = time.perf_counter()

        try:
            async with session.request(
                method=method.upper(),
                url=url,
                headers=hdrs,
                params=params,
                json=json_body,
            ) as resp:
                body = await resp.text()
                status = resp.status
        except (TimeoutError, aiohttp.ClientError) as e:
            log.warning(
                "http_exception",
                extra={"service": self.service, "method": method, "url": url, "error": str(e)},
            )
            external_api_requests_total.labels(service=self.service, status="error").inc()
            raise UpstreamError(self.service, str(e) or type(e).__name__) from e

        elapsed = time.perf_counter() - t0
        external_api_duration_seconds.labels(service=self.service).observe(elapsed)
        external_api_requests_total.labels(service=self.service, status=str(status)).inc()

        log.info(
            "http_response",
            extra={
                "service": self.service,
                "method": method,
                "url": url,
                "status": status,
                "elapsed_ms": int(elapsed * 1000),
                "body_len": len(body),
            },
        )

        if not 200 <= status < 300:
            raise UpstreamError(self.service, body[:256], status=status)
        return status, body

    async def json(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Make HTTP request and parse JSON response.

        Raises:
            UpstreamError: If the request fails or the body is not valid JSON

        """
        _, txt = await self.request(method, path, **kwargs)
        try:
            return json.loads(txt) if txt else {}
        except json.JSONDecodeError as e:
            log.error(
                "json_decode_error",
                extra={"url": f"{self.base_url}{path}", "text_sample": txt[:256]},
            )
            raise UpstreamError(self.service, "response is not valid JSON") from e


__all__ = ["BaseHTTPClient", "DEFAULT_TIMEOUT", "UpstreamError"]
