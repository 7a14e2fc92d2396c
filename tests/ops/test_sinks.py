"""Tests for notification sinks."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from prometheus_client import REGISTRY

from commission_recon.ops.anomaly import evaluate
from commission_recon.ops.sinks import (
    CloudWatchMetricSink,
    PagerDutySink,
    PrometheusCounterSink,
    SlackWebhookSink,
    SnsSink,
    build_sinks,
)

CHECK = evaluate(1500.0, 1000.0, metric_name="val_rmse")


@pytest.mark.asyncio
async def test_prometheus_sink_increments_counter():
    labels = {"metric": "val_rmse"}
    before = REGISTRY.get_sample_value("anomaly_alerts_total", labels) or 0.0

    await PrometheusCounterSink().send(CHECK, "msg")

    assert REGISTRY.get_sample_value("anomaly_alerts_total", labels) == before + 1


@pytest.mark.asyncio
async def test_cloudwatch_sink_puts_count():
    client = MagicMock()
    sink = CloudWatchMetricSink("Recon/Models", "ModelAnomaly", client=client)

    await sink.send(CHECK, "msg")

    kwargs = client.put_metric_data.call_args.kwargs
    assert kwargs["Namespace"] == "Recon/Models"
    datum = kwargs["MetricData"][0]
    assert datum["MetricName"] == "ModelAnomaly"
    assert datum["Value"] == 1.0
    assert datum["Unit"] == "Count"


@pytest.mark.asyncio
async def test_sns_sink_publishes_subject_and_body():
    client = MagicMock()
    sink = SnsSink("arn:aws:sns:us-east-1:123456789012:alerts", client=client)

    await sink.send(CHECK, "full body")

    client.publish.assert_called_once_with(
        TopicArn="arn:aws:sns:us-east-1:123456789012:alerts",
        Subject="Anomaly: val_rmse above 1000",
        Message="full body",
    )


@pytest.mark.asyncio
async def test_sns_subject_truncated():
    client = MagicMock()
    long_check = evaluate(2.0, 1.0, metric_name="m" * 200)

    await SnsSink("arn", client=client).send(long_check, "body")

    assert len(client.publish.call_args.kwargs["Subject"]) == 100


@pytest.mark.asyncio
async def test_slack_sink_posts_message():
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.post_message = AsyncMock()
    sink = SlackWebhookSink("https://hooks.slack.com/services/T/B/X", client=client)

    await sink.send(CHECK, "hello")

    client.post_message.assert_awaited_once_with("hello")


@pytest.mark.asyncio
async def test_pagerduty_sink_triggers_with_summary():
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.trigger = AsyncMock(return_value={"status": "success"})
    sink = PagerDutySink("rk", source="recon", severity="critical", client=client)

    await sink.send(CHECK, "first line\nsecond line")

    kwargs = client.trigger.call_args.kwargs
    assert kwargs["summary"] == "first line"
    assert kwargs["source"] == "recon"
    assert kwargs["severity"] == "critical"
    assert kwargs["custom_details"]["metric_value"] == 1500.0


def test_build_sinks_only_metrics_by_default(settings):
    sinks = build_sinks(settings)

    assert [s.channel for s in sinks] == ["metrics"]


def test_build_sinks_nothing_configured(settings):
    settings.alert_metrics_enabled = False

    assert build_sinks(settings) == []


def test_build_sinks_all_channels(settings):
    settings.cloudwatch_namespace = "Recon/Models"
    settings.sns_topic_arn = "arn:aws:sns:us-east-1:1:alerts"
    settings.slack_webhook_url = "https://hooks.slack.com/services/T/B/X"
    settings.pagerduty_routing_key = "routing-key"

    with patch("commission_recon.ops.sinks.boto3") as mock_boto3:
        sinks = build_sinks(settings)

    assert [s.channel for s in sinks] == ["metrics", "cloudwatch", "sns", "slack", "pagerduty"]
    regions = {c.kwargs["region_name"] for c in mock_boto3.client.call_args_list}
    assert regions == {settings.aws_region}
