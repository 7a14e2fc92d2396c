"""Prometheus metrics for monitoring."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# HTTP Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# External API metrics
external_api_requests_total = Counter(
    "external_api_requests_total",
    "Total external API requests",
    ["service", "status"],  # service: databricks, slack, pagerduty, databrew
)

external_api_duration_seconds = Histogram(
    "external_api_duration_seconds",
    "External API request duration",
    ["service"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Reconciliation metrics
recon_reports_total = Counter(
    "recon_reports_total",
    "Total reconciliation reports built",
    ["variant", "status"],  # status: success, failed
)

recon_rows_total = Counter(
    "recon_rows_total",
    "Total reconciliation rows emitted",
    ["variant"],
)

recon_negative_sums_total = Counter(
    "recon_negative_sums_total",
    "Aggregated sums below zero (data-quality anomaly)",
    ["side"],  # side: research_cost, commission
)

# Anomaly check metrics
anomaly_checks_total = Counter(
    "anomaly_checks_total",
    "Total threshold checks evaluated",
    ["metric", "result"],  # result: exceeded, ok
)

anomaly_alerts_total = Counter(
    "anomaly_alerts_total",
    "Alerts raised through the metrics channel",
    ["metric"],
)

notifications_total = Counter(
    "notifications_total",
    "Alert deliveries per channel",
    ["channel", "outcome"],  # outcome: success, failure
)

# Polling metrics
poll_attempts_total = Counter(
    "poll_attempts_total",
    "Status polls issued against external jobs",
    ["target"],
)

# System metrics
app_uptime_seconds = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)

app_info = Gauge(
    "app_info",
    "Application info",
    ["version", "environment"],
)
