"""
Backend registrar and thin backend wrappers.

The wrappers mirror the long-standing SDK surface: they raise ApiError or
NetworkError on failure instead of returning a PipelineResult, except
``get_job_data`` which has always reported failures in its return value.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Union

from .client import TriggerXClient
from .errors import BackendRejectedError, TriggerXError
from .types import CreateJobData

logger = logging.getLogger("triggerx.api")

_REJECTED_STATUSES = {"validation_failed", "failed", "error", "rejected"}


def is_backend_rejection(response: Any) -> bool:
    """True when the backend acknowledged the request but refused the job."""
    if not isinstance(response, dict):
        return False
    if response.get("success") is False:
        return True
    status = response.get("status")
    return isinstance(status, str) and status.lower() in _REJECTED_STATUSES


async def register_job(
    client: TriggerXClient, job_data: Union[CreateJobData, Dict[str, Any]]
) -> Any:
    """POST the job record to /api/jobs and return the acknowledgement.

    Raises BackendRejectedError when the acknowledgement itself reports a
    validation failure; transport failures surface as ApiError/NetworkError.
    """
    payload = job_data.to_payload() if isinstance(job_data, CreateJobData) else dict(job_data)
    response = await client.post("/api/jobs", [payload])
    if is_backend_rejection(response):
        message = response.get("message") or response.get("error") or "Backend rejected the job"
        raise BackendRejectedError(
            str(message), {"job_id": payload.get("job_id"), "response": response}
        )
    logger.info(f"Job {payload.get('job_id')} registered with backend")
    return response


async def get_job_data_by_id(client: TriggerXClient, job_id: Any) -> Any:
    return await client.get(f"/api/jobs/{job_id}")


async def get_user_data(client: TriggerXClient, address: str) -> Any:
    return await client.get(f"/api/users/{address}")


async def get_jobs_by_user_address(client: TriggerXClient, user_address: str) -> Any:
    return await client.get(f"/api/jobs/user/{user_address}")


async def get_job_for_user(client: TriggerXClient, user_address: str, job_id: Any) -> Any:
    return await client.get(f"/api/jobs/user/{user_address}/{job_id}")


async def get_tasks_by_job_id(client: TriggerXClient, job_id: Any) -> Any:
    return await client.get(f"/api/tasks/job/{job_id}")


async def delete_job_from_backend(client: TriggerXClient, job_id: Any) -> Any:
    return await client.put(f"/api/jobs/delete/{job_id}", {})


async def get_job_data(client: TriggerXClient) -> Dict[str, Any]:
    """Jobs owned by the client's API key: ``{"success", "jobs"}`` or ``{"success", "error"}``."""
    try:
        data = await client.get("/api/jobs/by-apikey")
    except TriggerXError as exc:
        logger.error(f"Failed to fetch jobs by API key: {exc}")
        return {"success": False, "error": exc.message}
    jobs: List[Any] = []
    if isinstance(data, dict):
        jobs = data.get("jobs") or []
    elif isinstance(data, list):
        jobs = data
    return {"success": True, "jobs": jobs}
