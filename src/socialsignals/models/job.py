"""Async Job models for background task tracking."""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialsignals.models.base import Base, JSONBType, TimestampMixin, utcnow


class JobType(str, enum.Enum):
    """Job type enum."""

    SYNC_REACTIONS = "sync_reactions"
    SYNC_COMMENTS = "sync_comments"
    ENRICH_PROFILES = "enrich_profiles"


class JobStatus(str, enum.Enum):
    """Job status enum."""

    PENDING = "pending"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ProgressStatus(str, enum.Enum):
    """Phase reported on progress events."""

    STARTING = "starting"
    SCRAPING = "scraping"
    PROCESSING = "processing"
    ENRICHING = "enriching"
    UNIFYING = "unifying"
    COMPLETED = "completed"
    ERROR = "error"


class AsyncJob(TimestampMixin, Base):
    """Async Job model for tracking background tasks."""

    __tablename__ = "async_jobs"

    user_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), index=True)

    # Job Info
    job_type: Mapped[JobType] = mapped_column(
        Enum(JobType, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        index=True,
    )
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, values_callable=lambda e: [x.value for x in e]),
        default=JobStatus.PENDING,
        index=True,
    )

    # Progress Tracking
    total_items: Mapped[int] = mapped_column(Integer, default=0)
    processed_items: Mapped[int] = mapped_column(Integer, default=0)
    failed_items: Mapped[int] = mapped_column(Integer, default=0)
    progress_percent: Mapped[float] = mapped_column(Float, default=0.0)
    current_step: Mapped[str | None] = mapped_column(String(500))

    # Configuration
    config: Mapped[dict] = mapped_column(JSONBType, nullable=False)  # {"post_ids": [...]} / {"profile_ids": [...]}

    # Results
    result: Mapped[dict | None] = mapped_column(JSONBType)  # JobOutcome.to_dict()
    error_message: Mapped[str | None] = mapped_column(Text)

    # Timing
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Celery Integration
    celery_task_id: Mapped[str | None] = mapped_column(String(255), index=True)

    # Relationships
    events: Mapped[list["JobProgressEvent"]] = relationship(
        "JobProgressEvent",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="JobProgressEvent.sequence",
    )

    def __repr__(self) -> str:
        return f"<AsyncJob(id={self.id}, type='{self.job_type}', status='{self.status}')>"

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class JobProgressEvent(Base):
    """Append-only progress event emitted while a job runs."""

    __tablename__ = "job_progress_events"

    job_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("async_jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ProgressStatus] = mapped_column(
        Enum(ProgressStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    percent: Mapped[float] = mapped_column(Float, default=0.0)
    message: Mapped[str | None] = mapped_column(String(1000))
    counts: Mapped[dict | None] = mapped_column(JSONBType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    job: Mapped["AsyncJob"] = relationship("AsyncJob", back_populates="events")

    def __repr__(self) -> str:
        return f"<JobProgressEvent(job_id={self.job_id}, seq={self.sequence}, status='{self.status}')>"
