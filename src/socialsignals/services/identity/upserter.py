"""Resolve a scraped actor to a stored profile, creating one when needed."""

from dataclasses import dataclass
from uuid import UUID

import structlog

from socialsignals.models.base import utcnow
from socialsignals.models.profile import Profile
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.scrape import RawActor
from socialsignals.services.identity.identifiers import (
    extract_identifiers,
    looks_like_url,
    normalize_raw_id,
)
from socialsignals.services.identity.matcher import ProfileMatcher

logger = structlog.get_logger()


@dataclass
class UpsertResult:
    profile_id: UUID
    created: bool
    needs_enrichment: bool
    strategy: str | None = None


class ProfileUpserter:
    """Insert or non-destructively update the profile for one actor.

    Identifier slots are only ever filled, never replaced. Any incoming
    identifier that conflicts with an occupied slot is appended to
    ``alternative_urns`` instead of being dropped.
    """

    def __init__(self, profiles: ProfileRepository, matcher: ProfileMatcher | None = None):
        self.profiles = profiles
        self.matcher = matcher or ProfileMatcher(profiles)

    async def upsert(self, actor: RawActor) -> UpsertResult:
        identifiers = extract_identifiers(actor.profile_url, actor.urn)
        raw_id = normalize_raw_id(actor.urn)
        legacy_id = identifiers.handle or actor.profile_url or raw_id

        match = await self.matcher.match(identifiers, actor.name, actor.headline, raw_id)

        if match is None:
            profile = await self.profiles.create(
                urn=legacy_id or "",
                primary_identifier=identifiers.primary,
                secondary_identifier=identifiers.secondary,
                name=actor.name,
                headline=actor.headline,
                profile_url=actor.profile_url,
                profile_pictures=actor.picture_set,
                profile_picture_url=actor.picture_url,
            )
            logger.debug(
                "Created profile",
                profile_id=str(profile.id),
                primary=identifiers.primary,
                secondary=identifiers.secondary,
            )
            return UpsertResult(profile.id, True, profile.needs_enrichment)

        profile = match.profile
        conflicts: list[str | None] = []

        if not profile.urn:
            profile.urn = legacy_id or ""
        elif legacy_id and legacy_id != profile.urn:
            conflicts.append(legacy_id)

        if identifiers.primary:
            if not profile.primary_identifier:
                profile.primary_identifier = identifiers.primary
            elif profile.primary_identifier != identifiers.primary:
                conflicts.append(identifiers.primary)

        if identifiers.secondary:
            if not profile.secondary_identifier:
                profile.secondary_identifier = identifiers.secondary
            elif profile.secondary_identifier != identifiers.secondary:
                conflicts.append(identifiers.secondary)

        if raw_id and not looks_like_url(raw_id):
            conflicts.append(raw_id)

        added = self.profiles.append_alternatives(profile, conflicts)
        if added:
            logger.info(
                "Recorded alternative identifiers",
                profile_id=str(profile.id),
                added=added,
                strategy=match.strategy,
            )

        self._refresh_descriptive(profile, actor)
        await self.profiles.db.flush()

        return UpsertResult(profile.id, False, profile.needs_enrichment, match.strategy)

    @staticmethod
    def _refresh_descriptive(profile: Profile, actor: RawActor) -> None:
        if actor.name:
            profile.name = actor.name
        if actor.headline:
            profile.headline = actor.headline
        if actor.profile_url:
            profile.profile_url = actor.profile_url
        pictures = actor.picture_set
        if pictures:
            profile.profile_pictures = pictures
            profile.profile_picture_url = actor.picture_url
        profile.last_updated = utcnow()
