"""Profile matching cascade."""

from dataclasses import dataclass

import structlog

from socialsignals.models.profile import Profile
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.services.identity.identifiers import ExtractedIdentifiers, normalize_raw_id

logger = structlog.get_logger()


@dataclass
class MatchResult:
    """A matched profile and the strategy that found it."""

    profile: Profile
    strategy: str


class ProfileMatcher:
    """Find the existing profile a scraped actor refers to.

    Strategies run in order of decreasing confidence and stop at the first
    hit: primary identifier, secondary identifier, legacy urn, recorded
    alternative identifiers, profile URL containing the handle, and finally
    the trimmed (name, headline) pair.
    """

    def __init__(self, profiles: ProfileRepository):
        self.profiles = profiles

    async def match(
        self,
        identifiers: ExtractedIdentifiers,
        name: str | None = None,
        headline: str | None = None,
        raw_id: str | None = None,
    ) -> MatchResult | None:
        raw_id = normalize_raw_id(raw_id)
        legacy_values = [raw_id, identifiers.handle]

        if identifiers.primary:
            profile = await self.profiles.find_by_primary_identifier(identifiers.primary)
            if profile:
                return MatchResult(profile, "primary_identifier")

        if identifiers.secondary:
            profile = await self.profiles.find_by_secondary_identifier(identifiers.secondary)
            if profile:
                return MatchResult(profile, "secondary_identifier")

        profile = await self.profiles.find_by_urn(legacy_values)
        if profile:
            return MatchResult(profile, "urn")

        profile = await self.profiles.find_by_alternative_urn(legacy_values + [identifiers.primary, identifiers.secondary])
        if profile:
            return MatchResult(profile, "alternative_urn")

        if identifiers.secondary:
            profile = await self.profiles.find_by_profile_url_containing(identifiers.secondary)
            if profile:
                return MatchResult(profile, "profile_url")

        name = (name or "").strip()
        headline = (headline or "").strip()
        if name and headline:
            profile = await self.profiles.find_by_name_and_headline(name, headline)
            if profile:
                logger.debug("Matched profile by name and headline", profile_id=str(profile.id), name=name)
                return MatchResult(profile, "name_headline")

        return None

    async def find_enrichment_targets(self, urn: str | None, public_identifier: str | None) -> list[Profile]:
        """Every stored row an enrichment result applies to.

        Same precedence as :meth:`match` but collects all rows of the first
        strategy that hits, since duplicates may exist before unification.
        """
        urn = normalize_raw_id(urn)
        public_identifier = (public_identifier or "").strip() or None

        if urn:
            rows = await self.profiles.find_all_by_primary_identifier(urn)
            if rows:
                return rows
        if public_identifier:
            rows = await self.profiles.find_all_by_secondary_identifier(public_identifier)
            if rows:
                return rows
        rows = await self.profiles.find_all_by_urn([urn, public_identifier])
        if rows:
            return rows
        if urn:
            rows = await self.profiles.find_all_by_profile_url_containing(urn)
            if rows:
                return rows
        if public_identifier:
            rows = await self.profiles.find_all_by_profile_url_containing(public_identifier)
            if rows:
                return rows
        return []
