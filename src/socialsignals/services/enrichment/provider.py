"""Provider interfaces for engagement scraping and profile enrichment."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from socialsignals.schemas.scrape import EnrichedProfile


class OutcomeStatus(str, Enum):
    """Per-key enrichment outcome."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class EnrichmentOutcome:
    """Result for one lookup key."""

    key: str
    status: OutcomeStatus
    profile: EnrichedProfile | None = None
    reason: str | None = None

    @classmethod
    def found(cls, key: str, profile: EnrichedProfile) -> "EnrichmentOutcome":
        return cls(key=key, status=OutcomeStatus.FOUND, profile=profile)

    @classmethod
    def not_found(cls, key: str) -> "EnrichmentOutcome":
        return cls(key=key, status=OutcomeStatus.NOT_FOUND)

    @classmethod
    def error(cls, key: str, reason: str) -> "EnrichmentOutcome":
        return cls(key=key, status=OutcomeStatus.ERROR, reason=reason)


@dataclass
class ScrapeResult:
    """Raw interactions grouped by post URL, plus per-post scrape errors."""

    items: dict[str, list[dict]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


class ProfileEnricherProtocol(Protocol):
    """Fetch person detail for a batch of lookup keys."""

    async def enrich_profiles(self, lookup_keys: list[str]) -> dict[str, EnrichmentOutcome]:
        """Return an outcome for every key sent, keyed by that key."""
        ...


class EngagementScraperProtocol(Protocol):
    """Fetch raw interactions for tracked posts."""

    async def scrape_reactions(self, post_urls: list[str]) -> ScrapeResult:
        ...

    async def scrape_comments(self, post_urls: list[str]) -> ScrapeResult:
        ...
