"""Pydantic schemas for request/response validation."""

from socialsignals.schemas.job import JobCancelResponse, JobEventResponse, JobListResponse, JobResponse
from socialsignals.schemas.profile import ProfileListResponse, ProfileResponse
from socialsignals.schemas.scrape import (
    EnrichedProfile,
    EnrichRequest,
    JobQueuedResponse,
    PostScrapeRequest,
    ProviderProfile,
    RawActor,
    RawComment,
    RawReaction,
)

__all__ = [
    "JobCancelResponse",
    "JobEventResponse",
    "JobListResponse",
    "JobResponse",
    "ProfileListResponse",
    "ProfileResponse",
    "EnrichedProfile",
    "EnrichRequest",
    "JobQueuedResponse",
    "PostScrapeRequest",
    "ProviderProfile",
    "RawActor",
    "RawComment",
    "RawReaction",
]
