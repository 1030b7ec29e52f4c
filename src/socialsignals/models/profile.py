"""Profile model - canonical record for one engaging actor."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from socialsignals.models.base import Base, JSONBType, utcnow


class Profile(Base):
    """Canonical profile resolved from scraped reactor/commenter blocks."""

    __tablename__ = "profiles"

    # Legacy single identifier (historical "urn" slot)
    urn: Mapped[str] = mapped_column(String(500), nullable=False, index=True)

    # Dual identifier scheme
    primary_identifier: Mapped[str | None] = mapped_column(String(255), index=True)  # ACoA... internal id
    secondary_identifier: Mapped[str | None] = mapped_column(String(255), index=True)  # vanity handle
    public_identifier: Mapped[str | None] = mapped_column(String(255), index=True)  # set by enrichment
    alternative_urns: Mapped[list | None] = mapped_column(JSONBType)  # append-only

    # Descriptive fields (refreshed on every scrape)
    name: Mapped[str | None] = mapped_column(String(500))
    headline: Mapped[str | None] = mapped_column(Text)
    profile_url: Mapped[str | None] = mapped_column(String(1000))
    profile_pictures: Mapped[dict | None] = mapped_column(JSONBType)  # small/medium/large/original
    profile_picture_url: Mapped[str | None] = mapped_column(String(1000))

    # Enrichment fields
    first_name: Mapped[str | None] = mapped_column(String(255))
    last_name: Mapped[str | None] = mapped_column(String(255))
    city: Mapped[str | None] = mapped_column(String(255))
    country: Mapped[str | None] = mapped_column(String(255))
    current_title: Mapped[str | None] = mapped_column(String(500))
    current_company: Mapped[str | None] = mapped_column(String(500))
    is_current_position: Mapped[bool | None] = mapped_column(Boolean)
    company_linkedin_url: Mapped[str | None] = mapped_column(String(1000))
    enriched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_enriched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Lifecycle
    first_seen: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name='{self.name}', urn='{self.urn}')>"

    @property
    def needs_enrichment(self) -> bool:
        """Profiles without a first name have not been enriched yet."""
        return not (self.first_name or "").strip()

    @property
    def location(self) -> str | None:
        parts = [p for p in (self.city, self.country) if p]
        return ", ".join(parts) if parts else None

    @property
    def known_identifiers(self) -> set[str]:
        """Every identifier value stored on this row, in any slot."""
        values = {
            self.urn,
            self.primary_identifier,
            self.secondary_identifier,
            self.public_identifier,
        }
        return {v for v in values if v}
