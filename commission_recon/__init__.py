"""Research cost vs commission reconciliation and model anomaly alerting."""

__version__ = "0.3.0"
