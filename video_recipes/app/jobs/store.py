# video_recipes/app/jobs/store.py
"""
In-memory job registry.

Readers (status polling) get snapshots; the task running a pipeline gets
the live ``Job`` through ``claim`` and is its only writer.
"""
from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections import deque
from typing import Optional

from video_recipes.app.domain.errors import JobAlreadyRunningError, JobNotFoundError
from video_recipes.app.domain.models import ExtractionResult, Job, JobStatus

logger = logging.getLogger(__name__)


def new_job_id() -> str:
    return f"job_{uuid.uuid4()}"


DEFAULT_MAX_FINISHED_JOBS = 1000


class JobStore:
    """Finished jobs beyond ``max_finished`` are evicted oldest-finished first.

    Queued and processing jobs are never evicted.
    """

    def __init__(self, max_finished: int = DEFAULT_MAX_FINISHED_JOBS) -> None:
        if max_finished < 1:
            raise ValueError("max_finished must be at least 1")
        self.max_finished = max_finished
        self._jobs: dict[str, Job] = {}
        self._finished: deque[str] = deque()
        self._lock = asyncio.Lock()

    async def create(self, youtube_url: str, video_id: str) -> Job:
        job = Job(id=new_job_id(), video_id=video_id, youtube_url=youtube_url)
        async with self._lock:
            self._jobs[job.id] = job
        logger.info("Job %s queued for video %s", job.id, video_id)
        return copy.deepcopy(job)

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job else None

    async def claim(self, job_id: str) -> Job:
        """Move a queued job to processing and hand the live record to the caller.

        Raises:
            JobNotFoundError: unknown id
            JobAlreadyRunningError: the job was already claimed
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.status != JobStatus.QUEUED:
                raise JobAlreadyRunningError(job_id, job.status.value)
            job.mark_processing()
            return job

    async def complete(self, job_id: str, result: ExtractionResult) -> None:
        async with self._lock:
            self._require(job_id).complete(result)
            self._finish(job_id)

    async def fail(self, job_id: str, message: str) -> None:
        async with self._lock:
            self._require(job_id).fail(message)
            self._finish(job_id)

    def _finish(self, job_id: str) -> None:
        self._finished.append(job_id)
        while len(self._finished) > self.max_finished:
            evicted = self._finished.popleft()
            self._jobs.pop(evicted, None)
            logger.debug("Evicted finished job %s", evicted)

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def __len__(self) -> int:
        return len(self._jobs)
