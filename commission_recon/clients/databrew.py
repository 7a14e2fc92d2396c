"""AWS Glue DataBrew client.

boto3 is blocking, so each call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from commission_recon.clients.http import UpstreamError
from commission_recon.core.logging import get_logger
from commission_recon.core.metrics import external_api_requests_total

log = get_logger("commission_recon.databrew")

# Job run states that mean the run has not finished yet
RUNNING_STATES = frozenset({"STARTING", "RUNNING", "STOPPING"})
JOB_SUCCEEDED = "SUCCEEDED"


class DataBrewClient:
    service = "databrew"

    def __init__(self, client: Any = None, region: str = "us-east-1") -> None:
        self._client = client or boto3.client("databrew", region_name=region)

    async def _call(self, operation: str, **kwargs) -> dict[str, Any]:
        try:
            response = await asyncio.to_thread(getattr(self._client, operation), **kwargs)
        except ClientError as e:
            error = e.response.get("Error", {})
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            external_api_requests_total.labels(service=self.service, status=str(status)).inc()
            log.warning(
                "databrew_error",
                extra={"operation": operation, "code": error.get("Code"), "status": status},
            )
            raise UpstreamError(
                self.service, f"{operation}: {error.get('Message', e)}", status=status
            ) from e
        except BotoCoreError as e:
            external_api_requests_total.labels(service=self.service, status="error").inc()
            raise UpstreamError(self.service, f"{operation}: {e}") from e

        external_api_requests_total.labels(service=self.service, status="200").inc()
        log.info("databrew_call", extra={"operation": operation})
        return response

    async def create_recipe(self, name: str, steps: list[dict[str, Any]]) -> str:
        """Create a recipe from DataBrew steps and return its name.

        Each step is ``{"Action": {"Operation": ..., "Parameters": {...}}}``.
        """
        if not steps:
            raise ValueError("A DataBrew recipe needs at least one step")
        response = await self._call("create_recipe", Name=name, Steps=steps)
        return response["Name"]

    async def publish_recipe(self, name: str, description: str = "") -> str:
        response = await self._call("publish_recipe", Name=name, Description=description)
        return response["Name"]

    async def start_job_run(self, job_name: str) -> str:
        response = await self._call("start_job_run", Name=job_name)
        return response["RunId"]

    async def get_job_run_state(self, job_name: str, run_id: str) -> str:
        response = await self._call("describe_job_run", Name=job_name, RunId=run_id)
        return response.get("State", "STARTING")
