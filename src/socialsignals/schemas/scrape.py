"""Schemas for scraped provider payloads and scrape job requests."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ProviderModel(BaseModel):
    """Provider payloads carry many fields we ignore."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProfilePictures(_ProviderModel):
    small: str | None = None
    medium: str | None = None
    large: str | None = None
    original: str | None = None


class RawActor(_ProviderModel):
    """Reactor or comment author block attached to a scraped interaction."""

    name: str | None = None
    headline: str | None = None
    profile_url: str | None = None
    urn: str | None = None  # raw id, when the scraper exposes one
    profile_pictures: ProfilePictures | None = None
    profile_picture: str | None = None

    @field_validator("name", "headline", "profile_url", "urn", "profile_picture", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def reference_key(self) -> str | None:
        """Key the importer maps back to a resolved profile."""
        return self.profile_url or self.urn

    @property
    def picture_url(self) -> str | None:
        pictures = self.profile_pictures
        if pictures:
            for url in (pictures.large, pictures.medium, pictures.small, pictures.original):
                if url:
                    return url
        return self.profile_picture

    @property
    def picture_set(self) -> dict | None:
        if self.profile_pictures:
            return self.profile_pictures.model_dump(exclude_none=True) or None
        if self.profile_picture:
            return {size: self.profile_picture for size in ("original", "large", "medium", "small")}
        return None


class ReactionMetadata(_ProviderModel):
    post_url: str | None = None
    page_number: int | None = None
    reaction_type: str | None = None
    total_reactions: int | None = None


class RawReaction(_ProviderModel):
    """One item from the reactions scraper dataset."""

    reaction_type: str | None = None
    reactor: RawActor | None = None
    metadata: ReactionMetadata | None = Field(default=None, alias="_metadata")

    @property
    def actor(self) -> RawActor | None:
        return self.reactor

    @property
    def is_valid(self) -> bool:
        return bool(self.reactor and self.reactor.profile_url and self.reaction_type)


class PostedAt(_ProviderModel):
    timestamp: int | None = None
    date: str | None = None


class CommentStats(_ProviderModel):
    total_reactions: int | None = None
    reactions: dict[str, int] | None = None
    comments: int | None = None


class CommentMetadata(_ProviderModel):
    page_number: int | None = None


class RawComment(_ProviderModel):
    """One item from the comments scraper dataset."""

    comment_id: str | None = None
    text: str | None = None
    comment_url: str | None = None
    posted_at: PostedAt | None = None
    is_edited: bool = False
    is_pinned: bool = False
    author: RawActor | None = None
    stats: CommentStats | None = None
    post_input: str | None = None
    metadata: CommentMetadata | None = Field(default=None, alias="_metadata")

    @property
    def actor(self) -> RawActor | None:
        return self.author

    @property
    def is_valid(self) -> bool:
        return bool(
            self.author
            and self.author.name
            and self.author.profile_url
            and self.comment_id
            and self.comment_id.strip()
        )


class ProviderLocation(_ProviderModel):
    city: str | None = None
    country: str | None = None


class ProviderBasicInfo(_ProviderModel):
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    headline: str | None = None
    public_identifier: str | None = None
    urn: str | None = None
    profile_picture_url: str | None = None
    location: ProviderLocation | None = None


class ProviderExperience(_ProviderModel):
    title: str | None = None
    company: str | None = None
    is_current: bool | None = None
    company_linkedin_url: str | None = None


class ProviderProfile(_ProviderModel):
    """One item from the profile batch scraper dataset."""

    basic_info: ProviderBasicInfo | None = None
    experience: list[ProviderExperience] | None = None
    message: str | None = None
    profile_url: str | None = Field(default=None, alias="profileUrl")

    @property
    def is_not_found(self) -> bool:
        return self.basic_info is None or "No profile found" in (self.message or "")

    def to_enriched(self) -> "EnrichedProfile":
        info = self.basic_info or ProviderBasicInfo()
        experience = self.experience or []
        current = next((e for e in experience if e.is_current), None) or (experience[0] if experience else None)
        location = info.location or ProviderLocation()
        return EnrichedProfile(
            public_identifier=info.public_identifier,
            urn=info.urn,
            first_name=info.first_name,
            last_name=info.last_name,
            headline=info.headline,
            profile_picture_url=info.profile_picture_url,
            city=location.city,
            country=location.country,
            current_title=current.title if current else None,
            current_company=current.company if current else None,
            is_current_position=current.is_current if current else None,
            company_linkedin_url=current.company_linkedin_url if current else None,
        )


class EnrichedProfile(BaseModel):
    """Normalised enrichment detail for one person."""

    public_identifier: str | None = None
    urn: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    headline: str | None = None
    profile_picture_url: str | None = None
    city: str | None = None
    country: str | None = None
    current_title: str | None = None
    current_company: str | None = None
    is_current_position: bool | None = None
    company_linkedin_url: str | None = None

    @property
    def identifiers(self) -> list[str]:
        return [v for v in dict.fromkeys((self.urn, self.public_identifier)) if v]


class PostScrapeRequest(BaseModel):
    """Request to sync reactions or comments for tracked posts."""

    post_ids: list[UUID] = Field(default_factory=list)


class EnrichRequest(BaseModel):
    """Request to enrich specific profiles."""

    profile_ids: list[UUID] = Field(default_factory=list)


class JobQueuedResponse(BaseModel):
    """Response returned when a job has been queued."""

    job_id: UUID
    status: str = "queued"
    message: str
    total_items: int
