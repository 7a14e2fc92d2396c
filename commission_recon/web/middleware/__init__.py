"""FastAPI middleware."""

from __future__ import annotations

from commission_recon.web.middleware.prometheus import PrometheusMiddleware

__all__ = ["PrometheusMiddleware"]
