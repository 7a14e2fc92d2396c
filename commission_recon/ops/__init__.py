"""Model anomaly checks and alert fan-out."""

from commission_recon.ops.alerts import DeliveryOutcome, format_alert_message, notify
from commission_recon.ops.anomaly import AnomalyCheck, evaluate
from commission_recon.ops.sinks import (
    CloudWatchMetricSink,
    PagerDutySink,
    PrometheusCounterSink,
    SlackWebhookSink,
    SnsSink,
    build_sinks,
)

__all__ = [
    "AnomalyCheck",
    "CloudWatchMetricSink",
    "DeliveryOutcome",
    "PagerDutySink",
    "PrometheusCounterSink",
    "SlackWebhookSink",
    "SnsSink",
    "build_sinks",
    "evaluate",
    "format_alert_message",
    "notify",
]
