"""Notification channels for anomaly alerts.

Each sink exposes ``channel`` and ``async send(check, message)``; a sink
raises on failure and ``ops.alerts.notify`` turns that into an outcome.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import boto3

from commission_recon.clients.notify import PagerDutyClient, SlackClient
from commission_recon.core.config import Settings
from commission_recon.core.metrics import anomaly_alerts_total
from commission_recon.ops.anomaly import AnomalyCheck

logger = logging.getLogger(__name__)

SNS_SUBJECT_MAX = 100


class Sink(Protocol):
    channel: str

    async def send(self, check: AnomalyCheck, message: str) -> None: ...


class PrometheusCounterSink:
    """Increment the in-process alert counter scraped from /metrics."""

    channel = "metrics"

    async def send(self, check: AnomalyCheck, message: str) -> None:
        anomaly_alerts_total.labels(metric=check.metric_name).inc()


class CloudWatchMetricSink:
    """Put a count of 1 on a CloudWatch metric."""

    channel = "cloudwatch"

    def __init__(self, namespace: str, metric_name: str, client: Any = None, region: str = "us-east-1"):
        self.namespace = namespace
        self.metric_name = metric_name
        self._client = client or boto3.client("cloudwatch", region_name=region)

    async def send(self, check: AnomalyCheck, message: str) -> None:
        await asyncio.to_thread(
            self._client.put_metric_data,
            Namespace=self.namespace,
            MetricData=[
                {
                    "MetricName": self.metric_name,
                    "Dimensions": [{"Name": "Metric", "Value": check.metric_name}],
                    "Value": 1.0,
                    "Unit": "Count",
                }
            ],
        )


class SnsSink:
    """Publish the alert to an SNS topic."""

    channel = "sns"

    def __init__(self, topic_arn: str, client: Any = None, region: str = "us-east-1"):
        self.topic_arn = topic_arn
        self._client = client or boto3.client("sns", region_name=region)

    async def send(self, check: AnomalyCheck, message: str) -> None:
        subject = f"Anomaly: {check.metric_name} above {check.threshold:g}"
        await asyncio.to_thread(
            self._client.publish,
            TopicArn=self.topic_arn,
            Subject=subject[:SNS_SUBJECT_MAX],
            Message=message,
        )


class SlackWebhookSink:
    channel = "slack"

    def __init__(self, webhook_url: str, client: SlackClient | None = None, timeout_sec: int = 30):
        self._client = client or SlackClient(webhook_url, timeout_sec=timeout_sec)

    async def send(self, check: AnomalyCheck, message: str) -> None:
        async with self._client:
            await self._client.post_message(message)


class PagerDutySink:
    channel = "pagerduty"

    def __init__(
        self,
        routing_key: str,
        source: str,
        severity: str = "error",
        client: PagerDutyClient | None = None,
        timeout_sec: int = 30,
    ):
        self.source = source
        self.severity = severity
        self._client = client or PagerDutyClient(routing_key, timeout_sec=timeout_sec)

    async def send(self, check: AnomalyCheck, message: str) -> None:
        async with self._client:
            await self._client.trigger(
                summary=message.splitlines()[0] if message else check.metric_name,
                source=self.source,
                severity=self.severity,
                custom_details=check.to_dict(),
                dedup_key=f"{self.source}:{check.metric_name}",
            )


def build_sinks(settings: Settings) -> list[Sink]:
    """Create one sink per configured channel; unset channels are skipped."""
    sinks: list[Sink] = []

    if settings.alert_metrics_enabled:
        sinks.append(PrometheusCounterSink())
    if settings.cloudwatch_namespace:
        sinks.append(
            CloudWatchMetricSink(
                settings.cloudwatch_namespace,
                settings.cloudwatch_metric_name,
                region=settings.aws_region,
            )
        )
    if settings.sns_topic_arn:
        sinks.append(SnsSink(settings.sns_topic_arn, region=settings.aws_region))
    if settings.slack_webhook_url:
        sinks.append(
            SlackWebhookSink(settings.slack_webhook_url, timeout_sec=settings.http_timeout_seconds)
        )
    if settings.pagerduty_routing_key:
        sinks.append(
            PagerDutySink(
                settings.pagerduty_routing_key,
                source=settings.alert_source,
                severity=settings.pagerduty_severity,
                timeout_sec=settings.http_timeout_seconds,
            )
        )

    logger.info(f"Configured alert channels: {[s.channel for s in sinks]}")
    return sinks
