"""
Job endpoints.

HTTP adapter over the job queue: create and admit, inspect, cancel, retry.

Admission failures return 400 with the error category; the job itself is
already stored as FAILED and its id is included so the caller can inspect it.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from ..jobs.errors import (
    AdmissionError,
    JobCancellationError,
    JobNotFoundError,
    JobNotQueuedError,
    JobRetryError,
)
from ..reporting.generator import render_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


class CreateJobRequest(BaseModel):
    """Request body for job creation."""

    model_config = ConfigDict(extra="forbid")

    project_id: str
    preset_id: str
    input_asset_ids: List[str]
    parameters: Dict[str, Any] = Field(default_factory=dict)
    created_by_id: Optional[str] = None


class RetryJobRequest(BaseModel):
    """Request body for job retry."""

    model_config = ConfigDict(extra="forbid")

    user_id: Optional[str] = None


def _admission_failed(e: AdmissionError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"job_id": e.job_id, "category": e.category.value, "message": e.message},
    )


@router.post("", status_code=201)
async def create_job(body: CreateJobRequest, request: Request):
    queue = request.app.state.pipeline.queue
    job = queue.create_job(
        project_id=body.project_id,
        preset_id=body.preset_id,
        input_asset_ids=body.input_asset_ids,
        parameters=body.parameters,
        created_by_id=body.created_by_id,
    )
    try:
        position = queue.enqueue_job(job.id)
    except AdmissionError as e:
        logger.info(f"Job {job.id} rejected at admission: [{e.category.value}] {e.message}")
        raise _admission_failed(e)
    return {"job": job.model_dump(mode="json"), "queue_position": position}


@router.get("")
async def list_jobs(request: Request, project_id: Optional[str] = None):
    jobs = request.app.state.pipeline.repository.list_jobs(project_id=project_id)
    return {"jobs": [job.model_dump(mode="json") for job in jobs]}


@router.get("/{job_id}")
async def get_job_status(job_id: str, request: Request):
    try:
        status = request.app.state.pipeline.queue.get_job_status(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return status.model_dump(mode="json")


@router.get("/{job_id}/events")
async def get_job_events(job_id: str, request: Request):
    pipeline = request.app.state.pipeline
    if pipeline.repository.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    events = pipeline.recorder.get_events(job_id=job_id)
    return {"events": [event.model_dump(mode="json") for event in events]}


@router.get("/{job_id}/report")
async def get_job_report(job_id: str, request: Request, format: str = "json"):
    repository = request.app.state.pipeline.repository
    if repository.get_job(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

    report = repository.get_report_for_job(job_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"No report for job {job_id}")

    if format == "text":
        return PlainTextResponse(render_text(report))

    data = report.model_dump(mode="json")
    data["confidence_label"] = report.confidence_label
    return data


@router.post("/{job_id}/cancel")
async def cancel_job(job_id: str, request: Request):
    try:
        job = request.app.state.pipeline.queue.cancel_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except JobCancellationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return job.model_dump(mode="json")


@router.post("/{job_id}/enqueue")
async def enqueue_job(job_id: str, request: Request):
    try:
        position = request.app.state.pipeline.queue.enqueue_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except JobNotQueuedError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AdmissionError as e:
        raise _admission_failed(e)
    return {"job_id": job_id, "queue_position": position}


@router.post("/{job_id}/retry", status_code=201)
async def retry_job(job_id: str, request: Request, body: Optional[RetryJobRequest] = None):
    user_id = body.user_id if body else None
    try:
        job = request.app.state.pipeline.queue.retry_job(job_id, user_id=user_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except JobRetryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AdmissionError as e:
        raise _admission_failed(e)
    return job.model_dump(mode="json")
