"""Job schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from socialsignals.models.job import JobType, JobStatus, ProgressStatus


class JobResponse(BaseModel):
    """Schema for job response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None = None
    job_type: JobType
    status: JobStatus
    total_items: int
    processed_items: int
    failed_items: int
    progress_percent: float
    current_step: str | None = None
    config: dict
    result: dict | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class JobListResponse(BaseModel):
    """Paginated list of jobs."""

    items: list[JobResponse]
    total: int
    page: int
    per_page: int
    pages: int


class JobEventResponse(BaseModel):
    """One durable progress event."""

    model_config = ConfigDict(from_attributes=True)

    sequence: int
    status: ProgressStatus
    percent: float
    message: str | None = None
    counts: dict | None = None
    created_at: datetime


class JobCancelResponse(BaseModel):
    """Result of a cancel request."""

    job_id: UUID
    success: bool
    status: JobStatus
