"""Data access repositories."""

from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.repositories.post_repo import PostRepository
from socialsignals.repositories.engagement_repo import EngagementRepository
from socialsignals.repositories.job_repo import JobRepository

__all__ = ["ProfileRepository", "PostRepository", "EngagementRepository", "JobRepository"]
