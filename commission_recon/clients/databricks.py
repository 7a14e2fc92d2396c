"""Databricks REST client (MLflow experiments, AutoML state, Jobs)."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from commission_recon.clients.http import DEFAULT_TIMEOUT, BaseHTTPClient
from commission_recon.core.logging import get_logger

log = get_logger("commission_recon.databricks")

AUTOML_STATE_TAG = "_databricks_automl.state"


class ExperimentState(str, Enum):
    """AutoML experiment lifecycle as reported by its state tag."""

    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELED = "CANCELED"


class DatabricksClient(BaseHTTPClient):
    service = "databricks"

    def __init__(self, host: str, token: str, timeout_sec: int = DEFAULT_TIMEOUT) -> None:
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        super().__init__(
            host,
            default_headers={"Authorization": f"Bearer {token}"},
            timeout_sec=timeout_sec,
        )

    # --- MLflow experiments ---

    async def create_experiment(self, name: str) -> str:
        """Create an MLflow experiment and return its id."""
        data = await self.json(
            "POST", "/api/2.0/mlflow/experiments/create", json_body={"name": name}
        )
        return str(data["experiment_id"])

    async def get_experiment(self, experiment_id: str) -> dict[str, Any]:
        data = await self.json(
            "GET",
            "/api/2.0/mlflow/experiments/get",
            params={"experiment_id": experiment_id},
        )
        return data.get("experiment", {})

    async def get_experiment_state(self, experiment_id: str) -> ExperimentState:
        """Read the AutoML state tag of an experiment.

        An experiment whose tag has not been written yet is still starting,
        so it is reported as RUNNING.
        """
        experiment = await self.get_experiment(experiment_id)
        tags = {t.get("key"): t.get("value") for t in experiment.get("tags", [])}
        raw = tags.get(AUTOML_STATE_TAG)
        if raw is None:
            return ExperimentState.RUNNING
        try:
            return ExperimentState(str(raw).upper())
        except ValueError:
            log.warning(
                "unknown_automl_state",
                extra={"experiment_id": experiment_id, "state": raw},
            )
            return ExperimentState.FAILED

    async def search_runs(
        self,
        experiment_id: str,
        order_by: list[str] | None = None,
        max_results: int = 1,
    ) -> list[dict[str, Any]]:
        data = await self.json(
            "POST",
            "/api/2.0/mlflow/runs/search",
            json_body={
                "experiment_ids": [experiment_id],
                "order_by": order_by or [],
                "max_results": max_results,
            },
        )
        return data.get("runs", [])

    async def best_run_metric(
        self, experiment_id: str, metric_name: str, ascending: bool = True
    ) -> float | None:
        """Return the best run's value for ``metric_name``.

        Returns:
            The metric value, or None when the experiment has no runs yet or
            the best run did not log the metric (not ready).

        """
        direction = "ASC" if ascending else "DESC"
        runs = await self.search_runs(
            experiment_id, order_by=[f"metrics.{metric_name} {direction}"], max_results=1
        )
        if not runs:
            log.info("no_runs_yet", extra={"experiment_id": experiment_id})
            return None

        metrics = runs[0].get("data", {}).get("metrics", [])
        for m in metrics:
            if m.get("key") == metric_name:
                value = float(m["value"])
                return None if math.isnan(value) else value

        log.info(
            "metric_not_logged",
            extra={"experiment_id": experiment_id, "metric": metric_name},
        )
        return None

    # --- Jobs ---

    async def run_job(self, job_id: int, notebook_params: dict[str, str] | None = None) -> int:
        """Trigger a job run and return its run id."""
        body: dict[str, Any] = {"job_id": job_id}
        if notebook_params:
            body["notebook_params"] = notebook_params
        data = await self.json("POST", "/api/2.1/jobs/run-now", json_body=body)
        return int(data["run_id"])

    async def get_run_state(self, run_id: int) -> str:
        """Return the run's life-cycle state (PENDING, RUNNING, TERMINATED, ...)."""
        data = await self.json("GET", "/api/2.1/jobs/runs/get", params={"run_id": run_id})
        return data.get("state", {}).get("life_cycle_state", "PENDING")
