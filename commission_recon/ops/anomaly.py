"""Threshold check for model evaluation metrics.

``evaluate`` is pure; delivering the result is ``ops.alerts.notify``'s job.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class AnomalyCheck:
    metric_name: str
    metric_value: float
    threshold: float
    exceeded: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def evaluate(metric_value: float, threshold: float, metric_name: str = "metric") -> AnomalyCheck:
    """Compare a metric against its threshold (strict greater-than).

    Raises:
        ValueError: If the metric or threshold is NaN

    """
    metric_value = float(metric_value)
    threshold = float(threshold)
    if math.isnan(metric_value) or math.isnan(threshold):
        raise ValueError(f"Cannot evaluate {metric_name}: value or threshold is NaN")

    return AnomalyCheck(
        metric_name=metric_name,
        metric_value=metric_value,
        threshold=threshold,
        exceeded=metric_value > threshold,
    )
