"""
DateMeDoc Backend — Analysis Worker
=====================================

What:  Drains the `analysis_jobs` queue.
Why:   Extraction and Gemini calls take seconds each, far too long for the
       request that queued them.
How:   Each poll claims a batch in its own short transaction (rows flip to
       `processing` and the lock is released on commit), then runs every job
       in a fresh session. A job that raises is rolled back and recorded as
       `failed` with its error message; the batch carries on. Database
       outages during polling are logged and retried after
       `worker_error_backoff`.
Who:   datemedoc.worker (python -m datemedoc.worker).
When:  Continuously, every `worker_poll_interval` seconds while idle.

Handlers:
    content_extraction   ApplicationService.process_application
    footprint_analysis   ProfileService.run_footprint_analysis
"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from datemedoc.config import settings
from datemedoc.database import async_session_factory
from datemedoc.exceptions import DateMeDocError, NotFoundError
from datemedoc.models.analysis import AnalysisJob
from datemedoc.models.profile import UserProfile
from datemedoc.services.application_service import ApplicationService, application_service
from datemedoc.services.job_queue import (
    CONTENT_EXTRACTION,
    FOOTPRINT_ANALYSIS,
    claim_jobs,
    finish_job,
    requeue_stale_jobs,
)
from datemedoc.services.profile_service import ProfileService, profile_service

logger = logging.getLogger(__name__)

Handler = Callable[[AsyncSession, AnalysisJob], Awaitable[None]]


class AnalysisWorker:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        applications: Optional[ApplicationService] = None,
        profiles: Optional[ProfileService] = None,
        batch_size: Optional[int] = None,
        job_timeout: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self.session_factory = session_factory or async_session_factory
        self.applications = applications or application_service
        self.profiles = profiles or profile_service
        self.batch_size = batch_size or settings.worker_batch_size
        self.job_timeout = job_timeout or settings.worker_job_timeout
        self.max_attempts = max_attempts or settings.worker_max_attempts
        self.handlers: Dict[str, Handler] = {
            CONTENT_EXTRACTION: self._content_extraction,
            FOOTPRINT_ANALYSIS: self._footprint_analysis,
        }

    async def _content_extraction(self, db: AsyncSession, job: AnalysisJob) -> None:
        await self.applications.process_application(db, job.entity_id)

    async def _footprint_analysis(self, db: AsyncSession, job: AnalysisJob) -> None:
        result = await db.execute(select(UserProfile).where(UserProfile.id == job.entity_id))
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError(resource="profile", resource_id=str(job.entity_id))
        await self.profiles.run_footprint_analysis(db, profile)

    async def _load(self, db: AsyncSession, job_id: uuid.UUID) -> AnalysisJob:
        result = await db.execute(select(AnalysisJob).where(AnalysisJob.id == job_id))
        return result.scalar_one()

    async def run_job(self, job_id: uuid.UUID) -> bool:
        """Runs one claimed job. Returns True when it completed."""
        async with self.session_factory() as db:
            job = await self._load(db, job_id)
            handler = self.handlers.get(job.job_type)
            try:
                if handler is None:
                    raise ValueError(f"Unknown job type '{job.job_type}'")
                await handler(db, job)
                finish_job(job)
                await db.commit()
                logger.info("Job %s (%s) completed", job_id, job.job_type)
                return True
            except DateMeDocError as e:
                error = e.message
                logger.warning("Job %s failed: %s", job_id, error)
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                logger.error("Job %s crashed: %s", job_id, error, exc_info=True)

            await db.rollback()
            job = await self._load(db, job_id)
            finish_job(job, error=error)
            await db.commit()
            return False

    async def run_once(self) -> int:
        """Claims and runs one batch. Returns the number of jobs claimed."""
        async with self.session_factory() as db:
            await requeue_stale_jobs(db, self.job_timeout, self.max_attempts)
            jobs = await claim_jobs(db, self.batch_size)
            job_ids = [job.id for job in jobs]
            await db.commit()

        for job_id in job_ids:
            try:
                await self.run_job(job_id)
            except Exception:
                # The job stays `processing` and is requeued once it goes stale.
                logger.error("Could not run or record job %s", job_id, exc_info=True)
        return len(job_ids)

    async def run_forever(
        self,
        stop: Optional[asyncio.Event] = None,
        poll_interval: Optional[float] = None,
        error_backoff: Optional[float] = None,
    ) -> None:
        stop = stop or asyncio.Event()
        interval = poll_interval if poll_interval is not None else settings.worker_poll_interval
        backoff = error_backoff if error_backoff is not None else settings.worker_error_backoff
        logger.info("Analysis worker started (batch=%d, poll=%.1fs)", self.batch_size, interval)
        while not stop.is_set():
            try:
                claimed = await self.run_once()
            except Exception as e:
                logger.error(
                    "Polling failed: %s; retrying in %.1fs", str(e), backoff, exc_info=True
                )
                claimed, wait = 0, backoff
            else:
                wait = interval
            if claimed:
                continue
            try:
                await asyncio.wait_for(stop.wait(), timeout=wait)
            except asyncio.TimeoutError:
                continue
        logger.info("Analysis worker stopped")
