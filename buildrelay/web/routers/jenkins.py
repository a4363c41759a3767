# buildrelay/web/routers/jenkins.py
import logging
from dataclasses import asdict
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from buildrelay.features.build_dispatch.data.jenkins_client import JenkinsClient
from buildrelay.features.build_dispatch.service.api import DispatchService
from ..dependencies import get_dispatch_service, get_jenkins_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jenkins", tags=["jenkins"])


class DispatchRequest(BaseModel):
    job: str = Field(min_length=1, pattern=r"^.*\S.*$")
    parameters: Dict[str, str] = Field(default_factory=dict)


@router.get("/jobs")
def list_jobs(client: JenkinsClient = Depends(get_jenkins_client)):
    return [asdict(j) for j in client.list_jobs()]


@router.post("/dispatches", status_code=202)
def create_dispatch(
    body: DispatchRequest,
    background_tasks: BackgroundTasks,
    service: DispatchService = Depends(get_dispatch_service),
):
    """
    Starts the job and answers once the build number is known.
    Tracking to completion continues in the background and lands in the history.
    """
    run = service.start(body.job, body.parameters)
    background_tasks.add_task(service.follow, run)

    return {
        "dispatch_id": str(run.record_id),
        "job": run.handle.job_name,
        "build_number": run.handle.number,
    }


@router.get("/dispatches")
def list_dispatches(
    job: Optional[str] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=200),
    service: DispatchService = Depends(get_dispatch_service),
):
    if not service.repo:
        return []
    return service.repo.list_recent(job_name=job, limit=limit)


@router.get("/dispatches/{dispatch_id}")
def get_dispatch(dispatch_id: UUID, service: DispatchService = Depends(get_dispatch_service)):
    record = service.repo.get_record(dispatch_id) if service.repo else None
    if not record:
        raise HTTPException(status_code=404, detail=f"Dispatch {dispatch_id} not found")
    return record


@router.post("/dispatches/{dispatch_id}/cancel")
def cancel_dispatch(dispatch_id: UUID, service: DispatchService = Depends(get_dispatch_service)):
    if not service.cancel(dispatch_id):
        raise HTTPException(status_code=404, detail=f"Dispatch {dispatch_id} is not running")
    logger.info(f"Cancellation requested for dispatch {dispatch_id}")
    return {"dispatch_id": str(dispatch_id), "cancelled": True}


@router.get("/jobs/{job_name:path}/builds/{number}")
def get_build(job_name: str, number: int, client: JenkinsClient = Depends(get_jenkins_client)):
    """Current status and full console log of one build."""
    status = client.get_status(job_name, number)
    log = client.get_log(job_name, number)
    return {
        "job": job_name,
        "number": status.number,
        "running": status.running,
        "result": status.result.value if status.result else None,
        "duration_ms": status.duration_ms,
        "console": log.text,
    }
