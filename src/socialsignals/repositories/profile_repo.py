"""Profile repository for data access."""

import json
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.models.base import utcnow
from socialsignals.models.profile import Profile


def _distinct(values: Iterable[str | None]) -> list[str]:
    out: list[str] = []
    for value in values:
        if value and value not in out:
            out.append(value)
    return out


class ProfileRepository:
    """Repository for Profile reads and writes.

    Single-row finders back the matching cascade and return the oldest row
    when several qualify. ``find_all_*`` variants return every match.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, profile_id: UUID) -> Profile | None:
        """Get a profile by ID."""
        result = await self.db.execute(select(Profile).where(Profile.id == profile_id))
        return result.scalar_one_or_none()

    async def get_many(self, profile_ids: Iterable[UUID], chunk_size: int = 50) -> list[Profile]:
        """Fetch profiles by id in ``IN`` chunks."""
        ids = list(dict.fromkeys(profile_ids))
        profiles: list[Profile] = []
        for start in range(0, len(ids), chunk_size):
            chunk = ids[start:start + chunk_size]
            result = await self.db.execute(select(Profile).where(Profile.id.in_(chunk)))
            profiles.extend(result.scalars().all())
        return profiles

    async def _first(self, *conditions) -> Profile | None:
        result = await self.db.execute(
            select(Profile)
            .where(*conditions)
            .order_by(Profile.first_seen.asc(), Profile.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _all(self, *conditions) -> list[Profile]:
        result = await self.db.execute(
            select(Profile).where(*conditions).order_by(Profile.first_seen.asc(), Profile.id)
        )
        return list(result.scalars().all())

    # Matching cascade

    async def find_by_primary_identifier(self, value: str) -> Profile | None:
        return await self._first(Profile.primary_identifier == value)

    async def find_by_secondary_identifier(self, value: str) -> Profile | None:
        return await self._first(Profile.secondary_identifier == value)

    async def find_by_urn(self, values: Iterable[str | None]) -> Profile | None:
        values = _distinct(values)
        if not values:
            return None
        return await self._first(Profile.urn.in_(values))

    async def find_by_alternative_urn(self, values: Iterable[str | None]) -> Profile | None:
        """Profile whose ``alternative_urns`` list holds one of the values."""
        values = _distinct(values)
        if not values:
            return None
        as_text = cast(Profile.alternative_urns, String)
        return await self._first(
            Profile.alternative_urns.is_not(None),
            or_(*(as_text.contains(json.dumps(v), autoescape=True) for v in values)),
        )

    async def find_by_profile_url_containing(self, fragment: str) -> Profile | None:
        return await self._first(Profile.profile_url.icontains(fragment, autoescape=True))

    async def find_by_name_and_headline(self, name: str, headline: str) -> Profile | None:
        return await self._first(
            func.trim(Profile.name) == name.strip(),
            func.trim(Profile.headline) == headline.strip(),
        )

    # Multi-row lookups

    async def find_all_by_primary_identifier(self, value: str) -> list[Profile]:
        return await self._all(Profile.primary_identifier == value)

    async def find_all_by_secondary_identifier(self, value: str) -> list[Profile]:
        return await self._all(Profile.secondary_identifier == value)

    async def find_all_by_urn(self, values: Iterable[str | None]) -> list[Profile]:
        values = _distinct(values)
        if not values:
            return []
        return await self._all(Profile.urn.in_(values))

    async def find_all_by_profile_url_containing(self, fragment: str) -> list[Profile]:
        return await self._all(Profile.profile_url.icontains(fragment, autoescape=True))

    async def find_sharing_identifiers(self, values: Iterable[str | None]) -> list[Profile]:
        """Rows holding any of the values in any identifier slot."""
        values = _distinct(values)
        if not values:
            return []
        return await self._all(
            or_(
                Profile.public_identifier.in_(values),
                Profile.secondary_identifier.in_(values),
                Profile.urn.in_(values),
                Profile.primary_identifier.in_(values),
            )
        )

    # Writes

    async def create(self, urn: str, **fields) -> Profile:
        """Create a new profile."""
        now = utcnow()
        fields.setdefault("first_seen", now)
        fields.setdefault("last_updated", now)
        profile = Profile(urn=urn, **fields)

        self.db.add(profile)
        await self.db.flush()
        await self.db.refresh(profile)

        return profile

    def append_alternatives(self, profile: Profile, values: Iterable[str | None]) -> list[str]:
        """Append identifiers not already stored anywhere on the profile.

        Returns the values actually added. The list is reassigned so the JSON
        column is flagged dirty.
        """
        existing = list(profile.alternative_urns or [])
        taken = set(existing) | profile.known_identifiers
        added = [v for v in _distinct(values) if v not in taken]
        if added:
            profile.alternative_urns = existing + added
        return added

    async def delete_many(self, profile_ids: Iterable[UUID]) -> None:
        for profile in await self.get_many(profile_ids):
            await self.db.delete(profile)
        await self.db.flush()

    async def list_profiles(
        self,
        page: int = 1,
        per_page: int = 20,
        needs_enrichment: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[Profile], int]:
        """List profiles with filtering and pagination."""
        query = select(Profile)

        conditions = []
        if needs_enrichment is not None:
            missing = or_(Profile.first_name.is_(None), func.trim(Profile.first_name) == "")
            conditions.append(missing if needs_enrichment else ~missing)

        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Profile.name.ilike(search_term),
                    Profile.headline.ilike(search_term),
                    Profile.profile_url.ilike(search_term),
                    Profile.current_company.ilike(search_term),
                )
            )

        if conditions:
            query = query.where(*conditions)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.db.execute(count_query)
        total = total_result.scalar_one()

        query = query.order_by(Profile.last_updated.desc())
        offset = (page - 1) * per_page
        query = query.offset(offset).limit(per_page)

        result = await self.db.execute(query)
        profiles = list(result.scalars().all())

        return profiles, total
