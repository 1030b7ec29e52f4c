"""Tests for the worker job lifecycle and progress persistence."""

import pytest

from socialsignals.errors import JobOutcome, NotFoundError, ValidationError
from socialsignals.models.job import JobStatus, JobType, ProgressStatus
from socialsignals.repositories.job_repo import JobRepository
from socialsignals.services.enrichment import ProgressEvent
from socialsignals.workers.runner import execute_job


class FakeClient:
    closed = False

    async def close(self) -> None:
        self.closed = True


async def queued_job(session, **config):
    jobs = JobRepository(session)
    job = await jobs.create(JobType.ENRICH_PROFILES, config=config, total_items=2)
    await jobs.update_status(job.id, JobStatus.QUEUED)
    await session.commit()
    return job


@pytest.mark.asyncio
async def test_completed_job_stores_outcome_and_events(session):
    job = await queued_job(session, profile_ids=["a", "b"])
    client = FakeClient()

    async def body(db, provider, sink, config):
        assert config == {"profile_ids": ["a", "b"]}
        outcome = JobOutcome()
        outcome.bump("enrichment_enriched", 1)
        outcome.add_failure("b", NotFoundError("Profile not found"))
        await sink.emit(ProgressEvent(ProgressStatus.ENRICHING, 50, "Half way", dict(outcome.counts)))
        await sink.emit(ProgressEvent(ProgressStatus.COMPLETED, 100, "Done", dict(outcome.counts)))
        return outcome

    response = await execute_job(
        session, str(job.id), body, processed_key="enrichment_enriched", client_factory=lambda: client
    )

    assert response["success"] is True
    assert response["partial"] is True
    assert client.closed is True

    jobs = JobRepository(session)
    stored = await jobs.get(job.id)
    assert stored.status == JobStatus.COMPLETED
    assert stored.started_at is not None
    assert stored.completed_at is not None
    assert stored.processed_items == 1
    assert stored.failed_items == 1
    assert stored.result["partial"] is True
    assert stored.result["failures"] == [{"item": "b", "kind": "not_found", "reason": "Profile not found"}]

    events = await jobs.list_events(job.id)
    assert [e.sequence for e in events] == [1, 2]
    assert [e.status for e in events] == [ProgressStatus.ENRICHING, ProgressStatus.COMPLETED]
    assert [e.sequence for e in await jobs.list_events(job.id, after=1)] == [2]


@pytest.mark.asyncio
async def test_validation_error_fails_the_job(session):
    job = await queued_job(session)

    async def body(db, provider, sink, config):
        raise ValidationError("No profile ids provided")

    response = await execute_job(session, str(job.id), body, "enrichment_enriched", client_factory=FakeClient)

    assert response["success"] is False
    stored = await JobRepository(session).get(job.id)
    assert stored.status == JobStatus.FAILED
    assert stored.error_message == "No profile ids provided"
    assert stored.result["status"] == "error"


@pytest.mark.asyncio
async def test_cancelled_job_stops_at_next_progress_point(session):
    job = await queued_job(session)
    reached = []

    async def body(db, provider, sink, config):
        await JobRepository(db).cancel(job.id)
        await db.commit()
        await sink.emit(ProgressEvent(ProgressStatus.ENRICHING, 10, "Started"))
        reached.append("after emit")
        return JobOutcome()

    response = await execute_job(session, str(job.id), body, "enrichment_enriched", client_factory=FakeClient)

    assert response["status"] == "cancelled"
    assert reached == []
    stored = await JobRepository(session).get(job.id)
    assert stored.status == JobStatus.CANCELLED
    assert await JobRepository(session).list_events(job.id) == []


@pytest.mark.asyncio
async def test_finished_job_is_not_rerun(session):
    job = await queued_job(session)
    await JobRepository(session).update_status(job.id, JobStatus.COMPLETED)
    await session.commit()

    async def body(db, provider, sink, config):
        raise AssertionError("should not run")

    response = await execute_job(session, str(job.id), body, "enrichment_enriched", client_factory=FakeClient)

    assert response["success"] is False
    assert response["status"] == "completed"
