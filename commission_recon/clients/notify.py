"""Chat webhook and incident paging clients."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from commission_recon.clients.http import DEFAULT_TIMEOUT, BaseHTTPClient

PAGERDUTY_EVENTS_URL = "https://events.pagerduty.com"
PAGERDUTY_SEVERITIES = frozenset({"critical", "error", "warning", "info"})


class SlackClient(BaseHTTPClient):
    """Slack incoming webhook."""

    service = "slack"

    def __init__(self, webhook_url: str, timeout_sec: int = DEFAULT_TIMEOUT) -> None:
        parts = urlsplit(webhook_url)
        super().__init__(f"{parts.scheme}://{parts.netloc}", timeout_sec=timeout_sec)
        self._path = parts.path

    async def post_message(self, text: str) -> None:
        # Slack answers a plain "ok", not JSON
        await self.request("POST", self._path, json_body={"text": text})


class PagerDutyClient(BaseHTTPClient):
    """PagerDuty Events API v2."""

    service = "pagerduty"

    def __init__(
        self,
        routing_key: str,
        base_url: str = PAGERDUTY_EVENTS_URL,
        timeout_sec: int = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(base_url, timeout_sec=timeout_sec)
        self._routing_key = routing_key

    async def trigger(
        self,
        summary: str,
        source: str,
        severity: str = "error",
        custom_details: dict[str, Any] | None = None,
        dedup_key: str | None = None,
    ) -> dict[str, Any]:
        """Open (or update) an incident.

        Raises:
            ValueError: If severity is not one PagerDuty accepts

        """
        if severity not in PAGERDUTY_SEVERITIES:
            raise ValueError(f"severity must be one of {sorted(PAGERDUTY_SEVERITIES)}")

        event: dict[str, Any] = {
            "routing_key": self._routing_key,
            "event_action": "trigger",
            "payload": {
                # PagerDuty truncates summaries at 1024 chars
                "summary": summary[:1024],
                "source": source,
                "severity": severity,
                "custom_details": custom_details or {},
            },
        }
        if dedup_key:
            event["dedup_key"] = dedup_key
        return await self.json("POST", "/v2/enqueue", json_body=event)
