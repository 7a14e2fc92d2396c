"""Tests for the metric threshold check."""

from __future__ import annotations

import pytest

from commission_recon.ops.anomaly import AnomalyCheck, evaluate


def test_equal_to_threshold_is_not_exceeded():
    assert evaluate(1000, 1000).exceeded is False


def test_above_threshold_is_exceeded():
    assert evaluate(1001, 1000).exceeded is True


def test_below_threshold():
    assert evaluate(999.99, 1000).exceeded is False


def test_check_carries_inputs():
    check = evaluate(12.5, 10, metric_name="val_rmse")

    assert check == AnomalyCheck(
        metric_name="val_rmse", metric_value=12.5, threshold=10.0, exceeded=True
    )
    assert check.to_dict()["metric_name"] == "val_rmse"


def test_nan_metric_rejected():
    with pytest.raises(ValueError, match="NaN"):
        evaluate(float("nan"), 1000)
