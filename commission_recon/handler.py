"""Batch entry point (AWS Lambda style ``handler(event, context)``).

Default action runs the model monitor: optional DataBrew recipe preparation,
AutoML polling, threshold evaluation and alert fan-out. An event with
``{"action": "reconcile", "variant": ..., "date_from": ..., "date_to": ...}``
builds a reconciliation report instead.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import Any

from commission_recon.clients.databrew import DataBrewClient
from commission_recon.clients.databricks import DatabricksClient
from commission_recon.core.config import Settings, get_settings
from commission_recon.core.logging import get_logger, set_run_id, setup_logging
from commission_recon.ops.sinks import build_sinks
from commission_recon.services.model_monitor import check_model, prepare_recipe

log = get_logger("commission_recon.handler")


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {"statusCode": status_code, "body": json.dumps(body, default=str)}


def _parse_date(value: Any) -> date | None:
    if value in (None, ""):
        return None
    return value if isinstance(value, date) else date.fromisoformat(str(value))


def _parse_precision(value: Any) -> int | None:
    if value in (None, ""):
        return None
    return int(value)


async def run_model_monitor(settings: Settings) -> dict[str, Any]:
    """Prepare the recipe (if configured) and check the model."""
    result: dict[str, Any] = {}

    if settings.databrew_recipe_name:
        result["recipe"] = await prepare_recipe(
            DataBrewClient(region=settings.aws_region), settings
        )

    if not (settings.databricks_host and settings.databricks_token):
        result.update(status="error", error="databricks_host/databricks_token not configured")
        return result

    async with DatabricksClient(
        settings.databricks_host,
        settings.databricks_token,
        timeout_sec=settings.http_timeout_seconds,
    ) as databricks:
        result.update(await check_model(databricks, build_sinks(settings), settings))
    return result


def run_reconciliation(event: dict[str, Any], settings: Settings) -> dict[str, Any]:
    from commission_recon.db.session import SessionLocal
    from commission_recon.services.recon_service import run_report

    db = SessionLocal()
    try:
        return run_report(
            db,
            event.get("variant", "broker"),
            date_from=_parse_date(event.get("date_from")),
            date_to=_parse_date(event.get("date_to")),
            broker=event.get("broker"),
            join=event.get("join"),
            precision=_parse_precision(event.get("precision")),
            settings=settings,
        )
    finally:
        db.close()


_STATUS_CODES = {"ok": 200, "success": 200, "not_ready": 202, "failed": 502, "timeout": 504}


def handler(event: dict[str, Any] | None = None, context: Any = None) -> dict[str, Any]:
    """Run one batch invocation and return a status code plus message."""
    settings = get_settings()
    setup_logging(settings.log_level, file_path=settings.log_file, json_format=settings.log_json)
    run_id = set_run_id(getattr(context, "aws_request_id", None))
    event = event or {}
    action = event.get("action", "model_check")

    log.info("invocation_start", extra={"action": action})
    try:
        if action == "reconcile":
            result = run_reconciliation(event, settings)
        elif action == "model_check":
            result = asyncio.run(run_model_monitor(settings))
        else:
            return _response(400, {"status": "error", "error": f"Unknown action '{action}'"})
    except (KeyError, ValueError) as e:
        log.warning(f"Invalid request: {e}", extra={"action": action})
        return _response(400, {"status": "error", "error": str(e), "run_id": run_id})
    except Exception as e:
        log.exception(f"Invocation failed: {e}", extra={"action": action})
        return _response(500, {"status": "error", "error": str(e), "run_id": run_id})

    result["run_id"] = run_id
    log.info("invocation_done", extra={"action": action, "status": result.get("status")})
    return _response(_STATUS_CODES.get(result.get("status"), 500), result)
