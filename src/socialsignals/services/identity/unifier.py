"""Duplicate unification: fold profiles that share identifiers into one survivor."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.errors import ConflictError, ItemFailure
from socialsignals.models.profile import Profile
from socialsignals.repositories.engagement_repo import EngagementRepository
from socialsignals.repositories.profile_repo import ProfileRepository

logger = structlog.get_logger()

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


class DisjointSet:
    """Union-find with path compression over hashable nodes."""

    def __init__(self):
        self._parent: dict = {}

    def add(self, node) -> None:
        self._parent.setdefault(node, node)

    def find(self, node):
        self.add(node)
        root = node
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[node] != root:
            self._parent[node], node = root, self._parent[node]
        return root

    def union(self, a, b) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self._parent[root_b] = root_a

    def groups(self) -> list[set]:
        out: dict = {}
        for node in self._parent:
            out.setdefault(self.find(node), set()).add(node)
        return list(out.values())


@dataclass(frozen=True)
class EnrichedIdentity:
    """Identifiers an enrichment result revealed for some stored profiles."""

    values: frozenset[str]
    profile_ids: frozenset[UUID] = frozenset()

    @classmethod
    def of(cls, values: Iterable[str | None], profile_ids: Iterable[UUID] = ()) -> "EnrichedIdentity":
        return cls(frozenset(v for v in values if v), frozenset(profile_ids))


@dataclass
class UnifyResult:
    merged: int = 0
    groups: int = 0
    survivors: list[UUID] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)


def _as_aware(value: datetime | None) -> datetime:
    if value is None:
        return _FAR_FUTURE
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def survivor_key(profile: Profile):
    """Enriched profiles first, then the oldest, then by id for stability."""
    return (not profile.public_identifier, _as_aware(profile.first_seen), str(profile.id))


def group_profiles(candidates: Sequence[Profile], identities: Iterable[EnrichedIdentity] = ()) -> list[list[Profile]]:
    """Group candidate rows transitively by shared identifier values.

    Each enrichment identity contributes a virtual node, so rows holding
    the provider's stable id and rows holding its public handle end up in
    one group even if no single row stores both.
    """
    by_id = {p.id: p for p in candidates}
    dsu = DisjointSet()
    owner: dict[str, object] = {}

    def link(node, value: str) -> None:
        if value in owner:
            dsu.union(owner[value], node)
        else:
            owner[value] = node

    for profile in candidates:
        dsu.add(profile.id)
        for value in profile.known_identifiers:
            link(profile.id, value)

    for index, identity in enumerate(identities):
        node = ("identity", index)
        dsu.add(node)
        for value in identity.values:
            link(node, value)
        for profile_id in identity.profile_ids:
            if profile_id in by_id:
                dsu.union(node, profile_id)

    groups = []
    for members in dsu.groups():
        rows = [by_id[m] for m in members if m in by_id]
        if len(rows) > 1:
            groups.append(sorted(rows, key=survivor_key))
    return groups


class DuplicateUnifier:
    """Merge stored profiles that represent the same person.

    Every group is merged in its own transaction: engagement rows are
    repointed, the repoint is verified, then the losers are deleted and the
    session commits. A failing group is rolled back and reported without
    touching the other groups.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.profiles = ProfileRepository(db)
        self.engagement = EngagementRepository(db)

    async def collect_candidates(self, identities: Sequence[EnrichedIdentity]) -> list[Profile]:
        values: set[str] = set()
        for identity in identities:
            values |= identity.values
        seeds = await self.profiles.get_many({pid for i in identities for pid in i.profile_ids})
        for profile in seeds:
            values |= profile.known_identifiers
        return await self.profiles.find_sharing_identifiers(sorted(values))

    async def unify(self, identities: Sequence[EnrichedIdentity]) -> UnifyResult:
        result = UnifyResult()
        if not identities:
            return result

        candidates = await self.collect_candidates(identities)
        # Plain ids only: a rollback expires every loaded instance.
        groups = [[p.id for p in group] for group in group_profiles(candidates, identities)]
        result.groups = len(groups)

        for group_ids in groups:
            try:
                merged = await self.merge_group(group_ids)
            except (ConflictError, SQLAlchemyError) as e:
                await self.db.rollback()
                logger.error(
                    "Merge group failed",
                    profile_ids=[str(pid) for pid in group_ids],
                    error=str(e),
                )
                result.failures.append(ItemFailure.from_error(",".join(str(pid) for pid in group_ids), e))
                continue
            result.merged += merged
            result.survivors.append(group_ids[0])

        logger.info("Unified duplicate profiles", groups=result.groups, merged=result.merged)
        return result

    async def merge_group(self, profile_ids: Sequence[UUID]) -> int:
        """Merge one group and commit. Returns the number of losers removed.

        Rows are reloaded by id so a rollback of an earlier group cannot leave
        expired instances behind.
        """
        rows = await self.profiles.get_many(profile_ids)
        if len(rows) < 2:
            return 0
        rows.sort(key=survivor_key)
        survivor, losers = rows[0], rows[1:]
        loser_ids = [p.id for p in losers]

        before = await self.engagement.count_for_profiles([survivor.id, *loser_ids])

        carried: list[str] = []
        for loser in losers:
            for slot in ("primary_identifier", "secondary_identifier", "public_identifier"):
                value = getattr(loser, slot)
                if not value:
                    continue
                if not getattr(survivor, slot):
                    setattr(survivor, slot, value)
                elif getattr(survivor, slot) != value:
                    carried.append(value)
            if loser.urn and loser.urn != survivor.urn:
                carried.append(loser.urn)
            carried.extend(loser.alternative_urns or [])
            if not survivor.first_name and loser.first_name:
                self._copy_enrichment(loser, survivor)

        self.profiles.append_alternatives(survivor, carried)

        await self.engagement.repoint(loser_ids, survivor.id)
        remaining = await self.engagement.count_for_profiles(loser_ids)
        if remaining:
            raise ConflictError(
                "Engagement rows still reference merge losers",
                remaining=remaining,
                survivor_id=str(survivor.id),
            )
        after = await self.engagement.count_for_profiles([survivor.id])
        if after != before:
            raise ConflictError(
                "Engagement row count changed during merge",
                before=before,
                after=after,
                survivor_id=str(survivor.id),
            )

        await self.profiles.delete_many(loser_ids)
        await self.db.commit()

        logger.info(
            "Merged duplicate profiles",
            survivor_id=str(survivor.id),
            loser_ids=[str(pid) for pid in loser_ids],
            rows=after,
        )
        return len(losers)

    @staticmethod
    def _copy_enrichment(source: Profile, target: Profile) -> None:
        for attr in (
            "first_name",
            "last_name",
            "city",
            "country",
            "current_title",
            "current_company",
            "is_current_position",
            "company_linkedin_url",
            "enriched_at",
            "last_enriched_at",
        ):
            if getattr(target, attr) is None:
                setattr(target, attr, getattr(source, attr))
