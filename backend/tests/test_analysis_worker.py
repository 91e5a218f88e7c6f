"""
DateMeDoc Backend — Job Queue & Analysis Worker Tests
=======================================================

What we test:
    ✅ enqueue_job / claim_jobs / finish_job state changes
    ✅ Worker dispatches by job type and commits completed jobs
    ✅ A failing job is rolled back and recorded as failed
    ✅ Unknown job types fail without crashing the batch
    ✅ Stale `processing` jobs are requeued, or failed once out of attempts
    ✅ run_forever exits when the stop event is set and survives DB outages
"""

import asyncio

import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy.exc import OperationalError
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from conftest import scalar_result, scalars_result
from datemedoc.exceptions import LLMServiceError
from datemedoc.models.analysis import AnalysisJob
from datemedoc.services.analysis_worker import AnalysisWorker
from datemedoc.services.job_queue import claim_jobs, enqueue_job, finish_job, requeue_stale_jobs


class _SessionFactory:
    """Stands in for async_sessionmaker: every call yields the same mock session."""

    def __init__(self, session):
        self.session = session

    def __call__(self):
        return self

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *exc_info):
        return False


def _job(job_type="content_extraction", **fields):
    values = dict(
        id=uuid4(), job_type=job_type, entity_id=uuid4(), entity_type="application",
        status="processing", priority=5, attempts=1,
    )
    values.update(fields)
    return AnalysisJob(**values)


def _load_result(job):
    result = MagicMock()
    result.scalar_one.return_value = job
    return result


class TestJobQueue:
    @pytest.mark.asyncio
    async def test_enqueue(self, mock_db_session):
        entity_id = uuid4()
        job = await enqueue_job(mock_db_session, "footprint_analysis", entity_id, "profile", priority=3)

        assert job.status == "queued"
        assert job.entity_id == entity_id
        assert job.priority == 3
        mock_db_session.add.assert_called_once_with(job)
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_claim_marks_processing(self, mock_db_session):
        queued = AnalysisJob(
            id=uuid4(), job_type="content_extraction", entity_id=uuid4(),
            entity_type="application", status="queued", attempts=0,
        )
        mock_db_session.execute.return_value = scalars_result([queued])

        jobs = await claim_jobs(mock_db_session, batch_size=5)

        assert jobs == [queued]
        assert queued.status == "processing"
        assert queued.attempts == 1
        assert queued.started_at is not None

    def test_finish(self):
        job = _job()
        finish_job(job)
        assert job.status == "completed"
        assert job.error_message is None

        finish_job(job, error="boom")
        assert job.status == "failed"
        assert job.error_message == "boom"
        assert job.completed_at is not None

    @pytest.mark.asyncio
    async def test_requeue_stale_jobs(self, mock_db_session):
        an_hour_ago = datetime.now(timezone.utc) - timedelta(hours=1)
        retry = _job(attempts=1, started_at=an_hour_ago)
        exhausted = _job(attempts=3, started_at=an_hour_ago)
        mock_db_session.execute.return_value = scalars_result([retry, exhausted])

        touched = await requeue_stale_jobs(mock_db_session, timeout_seconds=900, max_attempts=3)

        assert touched == 2
        assert retry.status == "queued"
        assert retry.started_at is None
        assert exhausted.status == "failed"
        assert exhausted.error_message == "Timed out after 3 attempts"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_requeue_nothing_stale(self, mock_db_session):
        mock_db_session.execute.return_value = scalars_result([])

        assert await requeue_stale_jobs(mock_db_session, timeout_seconds=900, max_attempts=3) == 0
        mock_db_session.flush.assert_not_awaited()


def _db_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


class TestAnalysisWorker:
    def setup_method(self):
        self.applications = MagicMock()
        self.applications.process_application = AsyncMock()
        self.profiles = MagicMock()
        self.profiles.run_footprint_analysis = AsyncMock()

    def _worker(self, session):
        return AnalysisWorker(
            session_factory=_SessionFactory(session),
            applications=self.applications,
            profiles=self.profiles,
            batch_size=2,
        )

    @pytest.mark.asyncio
    async def test_content_extraction_completes(self, mock_db_session):
        job = _job()
        mock_db_session.execute.return_value = _load_result(job)

        assert await self._worker(mock_db_session).run_job(job.id) is True

        self.applications.process_application.assert_awaited_once_with(mock_db_session, job.entity_id)
        assert job.status == "completed"
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_footprint_analysis_loads_profile(self, mock_db_session, sample_profile):
        job = _job("footprint_analysis", entity_type="profile")
        mock_db_session.execute = AsyncMock(side_effect=[
            _load_result(job), scalar_result(sample_profile),
        ])

        assert await self._worker(mock_db_session).run_job(job.id) is True
        self.profiles.run_footprint_analysis.assert_awaited_once_with(mock_db_session, sample_profile)

    @pytest.mark.asyncio
    async def test_failure_is_recorded(self, mock_db_session):
        job = _job()
        mock_db_session.execute.return_value = _load_result(job)
        self.applications.process_application = AsyncMock(
            side_effect=LLMServiceError(message="Gemini unavailable")
        )

        assert await self._worker(mock_db_session).run_job(job.id) is False

        mock_db_session.rollback.assert_awaited_once()
        assert job.status == "failed"
        assert job.error_message == "Gemini unavailable"

    @pytest.mark.asyncio
    async def test_unknown_job_type(self, mock_db_session):
        job = _job("send_flowers")
        mock_db_session.execute.return_value = _load_result(job)

        assert await self._worker(mock_db_session).run_job(job.id) is False
        assert job.status == "failed"
        assert "Unknown job type" in job.error_message

    @pytest.mark.asyncio
    async def test_run_once_runs_claimed_jobs(self, mock_db_session):
        first, second = _job(), _job()
        first.status = second.status = "queued"
        mock_db_session.execute = AsyncMock(side_effect=[
            scalars_result([]),
            scalars_result([first, second]),
            _load_result(first),
            _load_result(second),
        ])

        assert await self._worker(mock_db_session).run_once() == 2
        assert self.applications.process_application.await_count == 2

    @pytest.mark.asyncio
    async def test_run_once_continues_past_unloadable_job(self, mock_db_session):
        first, second = _job(), _job()
        mock_db_session.execute = AsyncMock(side_effect=[
            scalars_result([]),
            scalars_result([first, second]),
            OperationalError("SELECT", {}, ConnectionResetError("reset")),
            _load_result(second),
        ])

        assert await self._worker(mock_db_session).run_once() == 2
        self.applications.process_application.assert_awaited_once_with(
            mock_db_session, second.entity_id
        )
        assert second.status == "completed"

    @pytest.mark.asyncio
    async def test_run_forever_survives_database_outage(self, mock_db_session):
        calls = {"n": 0}

        async def execute(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                _db_down()
            return scalars_result([])

        mock_db_session.execute = execute
        stop = asyncio.Event()
        worker = self._worker(mock_db_session)

        task = asyncio.create_task(
            worker.run_forever(stop, poll_interval=0.01, error_backoff=0.01)
        )
        await asyncio.sleep(0.1)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        # one failed poll, then at least one full requeue + claim round
        assert calls["n"] >= 3

    @pytest.mark.asyncio
    async def test_run_forever_stops(self, mock_db_session):
        mock_db_session.execute.return_value = scalars_result([])
        stop = asyncio.Event()
        worker = self._worker(mock_db_session)

        task = asyncio.create_task(worker.run_forever(stop, poll_interval=0.01))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert task.done()
