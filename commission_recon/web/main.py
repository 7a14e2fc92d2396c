"""FastAPI application serving reconciliation reports."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from commission_recon import __version__
from commission_recon.core.config import Settings, get_settings
from commission_recon.core.logging import get_logger, get_run_id, set_run_id
from commission_recon.core.metrics import app_info, app_uptime_seconds
from commission_recon.web.middleware import PrometheusMiddleware
from commission_recon.web.routers import recon

log = get_logger("commission_recon.web")

# Application start time for uptime calculation
APP_START_TIME = time.time()

app = FastAPI(
    title="Commission Reconciliation API",
    version=__version__,
    description="Research cost vs commission reconciliation reports",
)

app.add_middleware(PrometheusMiddleware)


def register_app_info(settings: Settings) -> None:
    """Publish version and deployment environment as the app_info gauge."""
    app_info.labels(version=__version__, environment=settings.environment).set(1)


register_app_info(get_settings())


@app.middleware("http")
async def run_id_middleware(request: Request, call_next):
    """Tag every request's logs with a run id."""
    rid = set_run_id(request.headers.get("X-Request-ID"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


# Global exception handler for unhandled errors (500)
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with proper logging and response."""
    request_id = get_run_id() or set_run_id()

    log.error(
        "unhandled_exception",
        extra={
            "request_id": request_id,
            "path": str(request.url.path),
            "method": request.method,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_server_error",
            "request_id": request_id,
        },
        headers={"X-Request-ID": request_id},
    )


app.include_router(recon.router, tags=["Reconciliation"])


@app.get("/health")
def health():
    """Basic health check for monitoring."""
    return {"status": "healthy"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    app_uptime_seconds.set(time.time() - APP_START_TIME)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
