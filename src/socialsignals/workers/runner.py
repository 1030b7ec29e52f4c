"""Shared job lifecycle for Celery tasks."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.errors import ConfigurationError, JobCancelled, JobOutcome, ValidationError
from socialsignals.models.job import JobStatus
from socialsignals.repositories.job_repo import JobRepository
from socialsignals.services.enrichment.apify import ApifyClient
from socialsignals.services.enrichment.progress import JobProgressSink

logger = structlog.get_logger()

JobBody = Callable[[AsyncSession, ApifyClient, JobProgressSink, dict], Awaitable[JobOutcome]]


def run_async(coro):
    """Run async function in sync context for Celery."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def execute_job(
    session: AsyncSession,
    job_id: str,
    body: JobBody,
    processed_key: str,
    client_factory: Callable[[], ApifyClient] = ApifyClient,
) -> dict[str, Any]:
    """
    Drive one AsyncJob from queued to a terminal status.

    ``body`` receives the session, a provider client, a progress sink bound
    to the job and the job's stored config, and returns the outcome.
    Validation and configuration errors fail the job; a cancellation seen
    through the sink leaves the job cancelled; anything else fails the job
    and is re-raised so Celery records it.
    """
    job_uuid = UUID(job_id)
    jobs = JobRepository(session)
    job = await jobs.get(job_uuid)

    if not job:
        logger.error("Job not found", job_id=job_id)
        return {"success": False, "error": "Job not found"}
    if job.is_terminal:
        logger.info("Job already finished", job_id=job_id, status=job.status.value)
        return {"success": False, "job_id": job_id, "status": job.status.value}

    config = dict(job.config or {})
    await jobs.update_status(job_uuid, JobStatus.RUNNING)
    await session.commit()

    client = None
    try:
        client = client_factory()
        outcome = await body(session, client, JobProgressSink(session, job_uuid), config)
    except JobCancelled:
        await session.rollback()
        logger.info("Job cancelled", job_id=job_id)
        return {"success": False, "job_id": job_id, "status": JobStatus.CANCELLED.value}
    except (ValidationError, ConfigurationError) as e:
        await session.rollback()
        logger.warning("Job rejected", job_id=job_id, kind=e.kind, error=e.message)
        outcome = JobOutcome(status="error", error=e.message)
        await jobs.update_status(job_uuid, JobStatus.FAILED, error_message=e.message, result=outcome.to_dict())
        await session.commit()
        return {"success": False, "job_id": job_id, "error": e.message}
    except Exception as e:
        await session.rollback()
        logger.error("Job failed", job_id=job_id, error=str(e), exc_info=e)
        await jobs.update_status(job_uuid, JobStatus.FAILED, error_message=str(e) or type(e).__name__)
        await session.commit()
        raise
    finally:
        if client is not None:
            await client.close()

    # Cancelled after the last progress point: keep the cancellation
    if await jobs.get_status(job_uuid) == JobStatus.CANCELLED:
        logger.info("Job cancelled before completion", job_id=job_id)
        return {"success": False, "job_id": job_id, "status": JobStatus.CANCELLED.value}

    await jobs.update_progress(
        job_uuid,
        percent=100,
        processed_items=outcome.counts.get(processed_key, 0),
        failed_items=len(outcome.failures),
    )
    await jobs.update_status(job_uuid, JobStatus.COMPLETED, result=outcome.to_dict())
    await session.commit()

    logger.info(
        "Job completed",
        job_id=job_id,
        partial=outcome.is_partial,
        failures=len(outcome.failures),
    )
    return {"success": True, "job_id": job_id, "partial": outcome.is_partial, "counts": outcome.counts}
