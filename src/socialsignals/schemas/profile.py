"""Profile schemas for API responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ProfileResponse(BaseModel):
    """Schema for profile response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    urn: str
    primary_identifier: str | None = None
    secondary_identifier: str | None = None
    public_identifier: str | None = None
    alternative_urns: list[str] | None = None

    name: str | None = None
    headline: str | None = None
    profile_url: str | None = None
    profile_picture_url: str | None = None

    first_name: str | None = None
    last_name: str | None = None
    location: str | None = None
    current_title: str | None = None
    current_company: str | None = None
    company_linkedin_url: str | None = None
    needs_enrichment: bool
    enriched_at: datetime | None = None
    last_enriched_at: datetime | None = None

    first_seen: datetime | None = None
    last_updated: datetime | None = None


class ProfileListResponse(BaseModel):
    """Paginated list of profiles."""

    items: list[ProfileResponse]
    total: int
    page: int
    per_page: int
    pages: int
