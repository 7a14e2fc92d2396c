"""Model quality monitor: prepare the DataBrew recipe, poll AutoML, evaluate, alert.

Upstream failures are caught here and returned as a status so that the
batch entry point can report them without crashing.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from commission_recon.clients.databrew import JOB_SUCCEEDED, RUNNING_STATES, DataBrewClient
from commission_recon.clients.databricks import DatabricksClient, ExperimentState
from commission_recon.clients.http import UpstreamError
from commission_recon.core.config import Settings
from commission_recon.core.metrics import anomaly_checks_total
from commission_recon.ops.alerts import notify
from commission_recon.ops.anomaly import evaluate
from commission_recon.ops.sinks import Sink
from commission_recon.services.polling import PollTimeoutError, poll_until_ready

logger = logging.getLogger(__name__)


async def _run_recipe_job(databrew: DataBrewClient, settings: Settings) -> dict[str, Any]:
    job_name = settings.databrew_job_name
    run_id = await databrew.start_job_run(job_name)
    state = await poll_until_ready(
        lambda: databrew.get_job_run_state(job_name, run_id),
        RUNNING_STATES,
        settings.poll_interval_sec,
        max_attempts=settings.poll_max_attempts,
        timeout=settings.poll_timeout_sec,
        target="databrew_job",
    )
    logger.info(
        f"DataBrew job {job_name} run {run_id} finished in state {state}",
        extra={"job_name": job_name, "run_id": run_id},
    )
    return {"job_name": job_name, "run_id": run_id, "state": state}


async def prepare_recipe(databrew: DataBrewClient, settings: Settings) -> dict[str, Any]:
    """Create and publish the configured DataBrew recipe.

    When ``databrew_job_name`` is set, the recipe job is started afterwards
    and awaited until it leaves the running states.

    Returns:
        {"status": "skipped" | "success" | "error", ...}; the job run, if
        any, is reported under "job".

    """
    if not settings.databrew_recipe_name:
        return {"status": "skipped", "reason": "databrew_recipe_name not configured"}

    try:
        steps = json.loads(settings.databrew_recipe_steps_json)
        name = await databrew.create_recipe(settings.databrew_recipe_name, steps)
        await databrew.publish_recipe(name)
    except (UpstreamError, ValueError) as e:
        logger.exception(f"DataBrew recipe preparation failed: {e}")
        return {"status": "error", "error": str(e)}

    logger.info(f"DataBrew recipe {name} created and published")
    result: dict[str, Any] = {"status": "success", "recipe": name}
    if not settings.databrew_job_name:
        return result

    try:
        job = await _run_recipe_job(databrew, settings)
    except (UpstreamError, PollTimeoutError) as e:
        logger.exception(f"DataBrew job {settings.databrew_job_name} failed: {e}")
        return {"status": "error", "recipe": name, "error": str(e)}

    result["job"] = job
    if job["state"] != JOB_SUCCEEDED:
        result.update(status="error", error=f"DataBrew job ended in state {job['state']}")
    return result


async def check_model(
    databricks: DatabricksClient,
    sinks: Sequence[Sink],
    settings: Settings,
    experiment_id: str | None = None,
) -> dict[str, Any]:
    """Wait for the AutoML experiment, then evaluate and alert.

    Returns:
        Dict with "status" in ok | not_ready | failed | timeout | error, plus
        the check and per-channel deliveries when the metric was evaluated.

    """
    experiment_id = experiment_id or settings.automl_experiment_id
    if not experiment_id:
        return {"status": "error", "error": "automl_experiment_id not configured"}

    try:
        state = await poll_until_ready(
            lambda: databricks.get_experiment_state(experiment_id),
            {ExperimentState.RUNNING},
            settings.poll_interval_sec,
            max_attempts=settings.poll_max_attempts,
            timeout=settings.poll_timeout_sec,
            target="automl_experiment",
        )
        if state is not ExperimentState.SUCCESS:
            logger.warning(f"AutoML experiment {experiment_id} ended in state {state.value}")
            return {"status": "failed", "experiment_id": experiment_id, "state": state.value}

        value = await databricks.best_run_metric(
            experiment_id,
            settings.automl_metric_name,
            ascending=settings.automl_metric_ascending,
        )
    except PollTimeoutError as e:
        logger.error(str(e), extra={"experiment_id": experiment_id, "attempts": e.attempts})
        return {"status": "timeout", "experiment_id": experiment_id, "error": str(e)}
    except UpstreamError as e:
        logger.exception(f"Databricks call failed: {e}")
        return {"status": "error", "experiment_id": experiment_id, "error": str(e)}

    if value is None:
        return {
            "status": "not_ready",
            "experiment_id": experiment_id,
            "reason": f"no run with metric {settings.automl_metric_name} yet",
        }

    check = evaluate(value, settings.anomaly_threshold, metric_name=settings.automl_metric_name)
    anomaly_checks_total.labels(
        metric=check.metric_name, result="exceeded" if check.exceeded else "ok"
    ).inc()
    logger.info(
        f"{check.metric_name}={check.metric_value} threshold={check.threshold} "
        f"exceeded={check.exceeded}",
        extra={"experiment_id": experiment_id},
    )

    deliveries = await notify(check, sinks, source=settings.alert_source) if check.exceeded else []

    return {
        "status": "ok",
        "experiment_id": experiment_id,
        "check": check.to_dict(),
        "deliveries": [d.to_dict() for d in deliveries],
    }
