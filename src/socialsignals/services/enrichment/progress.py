"""Progress events and sinks."""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.errors import JobCancelled
from socialsignals.models.job import JobStatus, ProgressStatus
from socialsignals.repositories.job_repo import JobRepository

logger = structlog.get_logger()


@dataclass
class ProgressEvent:
    """One progress update: phase, percent complete, message and running counts."""

    status: ProgressStatus
    percent: float
    message: str
    counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "percent": self.percent,
            "message": self.message,
            "counts": dict(self.counts),
        }


class ProgressSink(Protocol):
    """Append-only consumer of progress events."""

    async def emit(self, event: ProgressEvent) -> None:
        ...


class NullProgressSink:
    """Discards events."""

    async def emit(self, event: ProgressEvent) -> None:
        return None


class ScaledProgressSink:
    """Map a phase's 0-100 percentages into ``[start, end]`` of the job."""

    def __init__(self, inner: ProgressSink, start: float, end: float):
        self.inner = inner
        self.start = start
        self.end = end

    async def emit(self, event: ProgressEvent) -> None:
        percent = self.start + (self.end - self.start) * max(0.0, min(event.percent, 100.0)) / 100.0
        await self.inner.emit(
            ProgressEvent(event.status, round(percent, 1), event.message, dict(event.counts))
        )


class JobProgressSink:
    """Persist events against an AsyncJob.

    Each emit commits, so progress is visible to other processes while the
    job runs. Once the job has been cancelled every further emit raises
    :class:`JobCancelled`, which stops the running pipeline at its next
    progress point.
    """

    def __init__(self, db: AsyncSession, job_id: UUID):
        self.db = db
        self.job_id = job_id
        self.jobs = JobRepository(db)

    async def emit(self, event: ProgressEvent) -> None:
        status = await self.jobs.get_status(self.job_id)
        if status == JobStatus.CANCELLED:
            raise JobCancelled("Job was cancelled", job_id=str(self.job_id))

        await self.jobs.add_event(
            self.job_id,
            status=event.status,
            percent=event.percent,
            message=event.message,
            counts=event.counts or None,
        )
        await self.jobs.update_progress(self.job_id, percent=event.percent, current_step=event.message)
        await self.db.commit()

        logger.debug(
            "Job progress",
            job_id=str(self.job_id),
            status=event.status.value,
            percent=event.percent,
            message=event.message,
        )
