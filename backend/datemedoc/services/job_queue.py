"""
DateMeDoc Backend — Analysis Job Queue
========================================

What:  Enqueue and claim rows in `analysis_jobs`.
Why:   A Postgres table is the only queue the deployment has; no broker.
How:   Producers (onboarding, application submit) add a `queued` row inside
       the request transaction. Workers claim the lowest-priority-number
       rows with `FOR UPDATE SKIP LOCKED`, so several workers never pick
       the same job. SQLite ignores the lock clause.
       Jobs orphaned in `processing` by a crashed worker are requeued after
       `worker_job_timeout` until `worker_max_attempts` is reached.

Job types:
    content_extraction   entity_type=application
    footprint_analysis   entity_type=profile
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datemedoc.database import utcnow
from datemedoc.models.analysis import AnalysisJob

logger = logging.getLogger(__name__)

CONTENT_EXTRACTION = "content_extraction"
FOOTPRINT_ANALYSIS = "footprint_analysis"
DEFAULT_PRIORITY = 5


async def enqueue_job(
    db: AsyncSession,
    job_type: str,
    entity_id: uuid.UUID,
    entity_type: str,
    priority: int = DEFAULT_PRIORITY,
) -> AnalysisJob:
    job = AnalysisJob(
        job_type=job_type,
        entity_id=entity_id,
        entity_type=entity_type,
        status="queued",
        priority=priority,
    )
    db.add(job)
    await db.flush()
    logger.info("Queued %s job for %s %s", job_type, entity_type, entity_id)
    return job


async def claim_jobs(db: AsyncSession, batch_size: int) -> List[AnalysisJob]:
    """Locks up to `batch_size` queued jobs and marks them processing."""
    result = await db.execute(
        select(AnalysisJob)
        .where(AnalysisJob.status == "queued")
        .order_by(AnalysisJob.priority.asc(), AnalysisJob.created_at.asc())
        .limit(batch_size)
        .with_for_update(skip_locked=True)
    )
    jobs = list(result.scalars().all())
    now = utcnow()
    for job in jobs:
        job.status = "processing"
        job.started_at = now
        job.attempts = (job.attempts or 0) + 1
    await db.flush()
    return jobs


def finish_job(job: AnalysisJob, error: Optional[str] = None) -> None:
    job.status = "failed" if error else "completed"
    job.error_message = error
    job.completed_at = utcnow()


async def requeue_stale_jobs(
    db: AsyncSession, timeout_seconds: int, max_attempts: int
) -> int:
    """
    Recovers jobs stuck in `processing` since before `timeout_seconds` ago,
    which happens when a worker dies mid-job. Jobs with attempts left go back
    to `queued`; the rest are marked failed. Returns how many were touched.
    """
    cutoff = utcnow() - timedelta(seconds=timeout_seconds)
    result = await db.execute(
        select(AnalysisJob)
        .where(AnalysisJob.status == "processing", AnalysisJob.started_at < cutoff)
        .with_for_update(skip_locked=True)
    )
    jobs = list(result.scalars().all())
    for job in jobs:
        if (job.attempts or 0) >= max_attempts:
            finish_job(job, error=f"Timed out after {job.attempts} attempts")
            logger.warning("Job %s (%s) abandoned after %d attempts", job.id, job.job_type, job.attempts)
        else:
            job.status = "queued"
            job.started_at = None
            logger.info("Requeued stale job %s (%s)", job.id, job.job_type)
    if jobs:
        await db.flush()
    return len(jobs)
