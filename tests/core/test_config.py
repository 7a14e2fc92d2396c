"""Tests for configuration management."""

import pytest

from commission_recon.core.config import Settings, get_settings


def test_settings_loads_from_env(monkeypatch):
    """Test that settings load correctly from environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./test.db")
    monkeypatch.setenv("AUTOML_EXPERIMENT_ID", "1234")
    monkeypatch.setenv("ANOMALY_THRESHOLD", "250.5")
    monkeypatch.setenv("POLL_MAX_ATTEMPTS", "10")
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.slack.com/services/T/B/X")

    s = Settings(_env_file=None)

    assert s.database_url == "sqlite:///./test.db"
    assert s.automl_experiment_id == "1234"
    assert s.anomaly_threshold == 250.5
    assert s.poll_max_attempts == 10
    assert s.slack_webhook_url.endswith("/X")


def test_settings_defaults(monkeypatch):
    """Test that optional fields have correct defaults."""
    for name in ("ANOMALY_THRESHOLD", "UNRESOLVED_BROKER_VALUES", "SNS_TOPIC_ARN"):
        monkeypatch.delenv(name, raising=False)

    s = Settings(_env_file=None)

    assert s.anomaly_threshold == 1000.0
    assert s.automl_metric_name == "val_rmse"
    assert s.unresolved_brokers == frozenset({"Other"})
    assert s.recon_default_precision is None
    assert s.sns_topic_arn is None
    assert s.http_timeout_seconds == 30


def test_unresolved_brokers_parsing(monkeypatch):
    monkeypatch.setenv("UNRESOLVED_BROKER_VALUES", " Other, Unknown ,,")

    s = Settings(_env_file=None)

    assert s.unresolved_brokers == frozenset({"Other", "Unknown"})


def test_settings_type_conversion(monkeypatch):
    """Test that string env vars are converted to correct types."""
    monkeypatch.setenv("AUTOML_METRIC_ASCENDING", "false")
    monkeypatch.setenv("POLL_INTERVAL_SEC", "5")
    monkeypatch.setenv("RECON_DEFAULT_PRECISION", "2")

    s = Settings(_env_file=None)

    assert s.automl_metric_ascending is False
    assert s.poll_interval_sec == 5.0
    assert s.recon_default_precision == 2


def test_invalid_env_raises_runtime_error(monkeypatch):
    monkeypatch.setenv("ANOMALY_THRESHOLD", "not-a-number")

    with pytest.raises(RuntimeError, match="ANOMALY_THRESHOLD"):
        get_settings()


def test_get_settings_caching(monkeypatch):
    """Test that get_settings returns cached instance."""
    monkeypatch.delenv("ANOMALY_THRESHOLD", raising=False)

    assert get_settings() is get_settings()
