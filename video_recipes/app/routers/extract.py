# video_recipes/app/routers/extract.py
"""
Extraction job routes. Jobs run in the background; clients poll status.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from video_recipes.app.config import settings
from video_recipes.app.domain.models import Job, JobStatus
from video_recipes.app.jobs.store import JobStore
from video_recipes.app.jobs.worker import process_job
from video_recipes.app.pipeline.orchestrator import ExtractionPipeline, get_pipeline, validate_url
from video_recipes.services.errors import GeminiConfigurationError, InvalidURLError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["extract"])

_store = JobStore(max_finished=settings.MAX_FINISHED_JOBS)


def get_job_store() -> JobStore:
    return _store


def get_extraction_pipeline() -> ExtractionPipeline:
    try:
        return get_pipeline()
    except GeminiConfigurationError as e:
        logger.error("Extraction pipeline unavailable: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


# =============================================================================
# Request/Response Models
# =============================================================================

class ExtractRequest(BaseModel):
    youtube_url: str = Field(..., min_length=1, description="YouTube watch, short or share URL")


class ExtractResponse(BaseModel):
    job_id: str
    status: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    current_tier: int
    progress: float = Field(..., ge=0.0, le=1.0)
    error: Optional[str] = None


def _status_response(job: Job) -> JobStatusResponse:
    return JobStatusResponse(
        job_id=job.id,
        status=job.status.value,
        current_tier=job.current_tier,
        progress=job.progress,
        error=job.error,
    )


async def _require_job(job_id: str, store: JobStore) -> Job:
    job = await store.get(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


# =============================================================================
# Routes
# =============================================================================

@router.post("/extract", response_model=ExtractResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_extraction(
    request: ExtractRequest,
    background_tasks: BackgroundTasks,
    store: JobStore = Depends(get_job_store),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
):
    try:
        video_id = validate_url(request.youtube_url)
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    job = await store.create(request.youtube_url, video_id)
    background_tasks.add_task(process_job, job.id, store, pipeline)
    return ExtractResponse(job_id=job.id, status=job.status.value)


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStore = Depends(get_job_store)):
    job = await _require_job(job_id, store)
    return _status_response(job)


@router.get("/results/{job_id}")
async def get_job_results(job_id: str, store: JobStore = Depends(get_job_store)) -> Any:
    """The extraction result, 202 while the job runs, 500 with the error if it failed."""
    job = await _require_job(job_id, store)

    if job.status in (JobStatus.QUEUED, JobStatus.PROCESSING):
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content={
                "job_id": job.id,
                "status": job.status.value,
                "message": "Job is still processing. Poll /api/status/{job_id} for updates.",
            },
        )

    if job.status == JobStatus.FAILED:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"job_id": job.id, "status": job.status.value, "error": job.error},
        )

    return job.result.to_dict()
