"""Database models."""

from socialsignals.models.base import Base
from socialsignals.models.profile import Profile
from socialsignals.models.post import Post
from socialsignals.models.engagement import Comment, EngagementKind, Reaction
from socialsignals.models.job import AsyncJob, JobProgressEvent, JobStatus, JobType, ProgressStatus
from socialsignals.models.database import async_engine, async_session_maker, build_engine, close_db, init_db, ping

__all__ = [
    "Base",
    "Profile",
    "Post",
    "Reaction",
    "Comment",
    "EngagementKind",
    "AsyncJob",
    "JobProgressEvent",
    "JobStatus",
    "JobType",
    "ProgressStatus",
    "async_engine",
    "async_session_maker",
    "build_engine",
    "ping",
    "init_db",
    "close_db",
]
