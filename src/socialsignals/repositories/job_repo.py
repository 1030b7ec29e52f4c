"""Job repository for data access."""

from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.models.base import utcnow
from socialsignals.models.job import AsyncJob, JobProgressEvent, JobStatus, JobType, ProgressStatus


class JobRepository:
    """Repository for AsyncJob CRUD operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, job_id: UUID) -> AsyncJob | None:
        """Get a job by ID."""
        result = await self.db.execute(select(AsyncJob).where(AsyncJob.id == job_id))
        return result.scalar_one_or_none()

    async def get_status(self, job_id: UUID) -> JobStatus | None:
        """Current stored status, without loading the job row."""
        result = await self.db.execute(
            select(AsyncJob.status).where(AsyncJob.id == job_id)
        )
        return result.scalar_one_or_none()

    async def list_jobs(
        self,
        page: int = 1,
        per_page: int = 20,
        status: str | None = None,
        job_type: str | None = None,
        user_id: UUID | None = None,
    ) -> tuple[list[AsyncJob], int]:
        """List jobs with filtering and pagination."""
        query = select(AsyncJob)

        conditions = []
        if status:
            conditions.append(AsyncJob.status == JobStatus(status))
        if job_type:
            conditions.append(AsyncJob.job_type == JobType(job_type))
        if user_id:
            conditions.append(AsyncJob.user_id == user_id)

        if conditions:
            query = query.where(*conditions)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar_one()

        # Apply ordering and pagination
        query = query.order_by(AsyncJob.created_at.desc())
        offset = (page - 1) * per_page
        query = query.offset(offset).limit(per_page)

        result = await self.db.execute(query)
        jobs = list(result.scalars().all())

        return jobs, total

    async def create(
        self,
        job_type: JobType,
        config: dict,
        total_items: int = 0,
        user_id: UUID | None = None,
    ) -> AsyncJob:
        """Create a new job."""
        job = AsyncJob(
            user_id=user_id,
            job_type=job_type,
            config=config,
            total_items=total_items,
            status=JobStatus.PENDING,
        )

        self.db.add(job)
        await self.db.flush()
        await self.db.refresh(job)

        return job

    async def update_status(
        self,
        job_id: UUID,
        status: JobStatus,
        error_message: str | None = None,
        result: dict | None = None,
    ) -> AsyncJob | None:
        """Update job status."""
        job = await self.get(job_id)
        if not job:
            return None

        job.status = status

        if status == JobStatus.RUNNING and not job.started_at:
            job.started_at = utcnow()
        elif status in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED):
            job.completed_at = utcnow()

        if error_message:
            job.error_message = error_message
        if result:
            job.result = result

        await self.db.flush()
        await self.db.refresh(job)

        return job

    async def update_progress(
        self,
        job_id: UUID,
        percent: float | None = None,
        current_step: str | None = None,
        processed_items: int | None = None,
        failed_items: int | None = None,
    ) -> AsyncJob | None:
        """Update job progress."""
        job = await self.get(job_id)
        if not job:
            return None

        if percent is not None:
            job.progress_percent = percent
        if current_step is not None:
            job.current_step = current_step[:500]
        if processed_items is not None:
            job.processed_items = processed_items
        if failed_items is not None:
            job.failed_items = failed_items

        await self.db.flush()

        return job

    async def cancel(self, job_id: UUID) -> bool:
        """Cancel a job that has not reached a terminal state."""
        job = await self.get(job_id)
        if not job:
            return False

        if job.is_terminal:
            return False

        job.status = JobStatus.CANCELLED
        job.completed_at = utcnow()

        await self.db.flush()

        return True

    async def add_event(
        self,
        job_id: UUID,
        status: ProgressStatus,
        percent: float,
        message: str | None = None,
        counts: dict | None = None,
    ) -> JobProgressEvent:
        """Append a progress event with the next sequence number for the job."""
        result = await self.db.execute(
            select(func.coalesce(func.max(JobProgressEvent.sequence), 0)).where(
                JobProgressEvent.job_id == job_id
            )
        )
        sequence = result.scalar_one() + 1

        event = JobProgressEvent(
            job_id=job_id,
            sequence=sequence,
            status=status,
            percent=percent,
            message=message[:1000] if message else None,
            counts=counts,
        )
        self.db.add(event)
        await self.db.flush()

        return event

    async def list_events(self, job_id: UUID, after: int = 0) -> list[JobProgressEvent]:
        """Events for a job in emission order, optionally after a sequence number."""
        result = await self.db.execute(
            select(JobProgressEvent)
            .where(JobProgressEvent.job_id == job_id, JobProgressEvent.sequence > after)
            .order_by(JobProgressEvent.sequence)
        )
        return list(result.scalars().all())
