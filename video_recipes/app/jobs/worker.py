from __future__ import annotations

import logging

from video_recipes.app.domain.errors import JobError
from video_recipes.app.jobs.store import JobStore
from video_recipes.app.pipeline.orchestrator import ExtractionPipeline, run_pipeline

logger = logging.getLogger(__name__)


async def process_job(
    job_id: str,
    store: JobStore,
    pipeline: ExtractionPipeline | None = None,
) -> None:
    """Run the pipeline for a queued job and record completion or failure."""
    try:
        job = await store.claim(job_id)
    except JobError as error:
        logger.warning("Job %s not started: %s", job_id, error)
        return

    try:
        result = await run_pipeline(job, pipeline)
    except Exception as error:
        message = str(error) or type(error).__name__
        logger.error("[Job %s] Failed: %s", job_id, message, exc_info=True)
        await store.fail(job_id, message)
        return

    await store.complete(job_id, result)
    logger.info(
        "[Job %s] Completed: tier=%d, ingredients=%d, confidence=%.2f, cost=$%.4f, time=%dms",
        job_id,
        result.extraction_tier,
        len(result.ingredients),
        result.confidence,
        result.processing_metadata.total_cost_usd,
        result.processing_metadata.processing_time_ms,
    )
