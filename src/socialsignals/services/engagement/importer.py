"""Engagement import: resolve actors, then replace a post's engagement rows."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

import pydantic
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.config import settings
from socialsignals.errors import (
    DeleteTimeout,
    EngagementWriteError,
    InsertTimeout,
    ItemFailure,
    NotFoundError,
)
from socialsignals.models.base import utcnow
from socialsignals.models.engagement import EngagementKind
from socialsignals.models.post import Post
from socialsignals.repositories.engagement_repo import EngagementRepository
from socialsignals.repositories.post_repo import PostRepository
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.scrape import RawActor, RawComment, RawReaction
from socialsignals.services.identity.identifiers import extract_identifiers, normalize_raw_id
from socialsignals.services.identity.upserter import ProfileUpserter

logger = structlog.get_logger()

_RECORD_MODELS = {
    EngagementKind.REACTIONS: RawReaction,
    EngagementKind.COMMENTS: RawComment,
}


@dataclass
class ImportResult:
    """Outcome of importing one post's interactions."""

    post_id: UUID
    kind: EngagementKind
    rows_written: int = 0
    profiles_touched: int = 0
    dropped: int = 0
    unresolved: int = 0
    created_profile_ids: list[UUID] = field(default_factory=list)
    needs_enrichment_ids: list[UUID] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)


class _ActorIndex:
    """Reference key -> profile id, with identifier and URL fallbacks."""

    def __init__(self):
        self.by_reference: dict[str, UUID] = {}
        self.by_identifier: dict[str, UUID] = {}
        self.failed: set[str] = set()

    def add(self, actor: RawActor, profile_id: UUID) -> None:
        if actor.reference_key:
            self.by_reference.setdefault(actor.reference_key, profile_id)
        identifiers = extract_identifiers(actor.profile_url, actor.urn)
        for value in identifiers.values:
            self.by_identifier.setdefault(value, profile_id)
        raw_id = normalize_raw_id(actor.urn)
        if raw_id:
            self.by_identifier.setdefault(raw_id, profile_id)

    def mark_failed(self, actor: RawActor) -> None:
        for key in (actor.reference_key, _dedup_key(actor)):
            if key:
                self.failed.add(key)

    def resolve(self, actor: RawActor) -> UUID | None:
        # Rows of an actor whose upsert failed are skipped, never re-attributed
        if actor.reference_key in self.failed or _dedup_key(actor) in self.failed:
            return None
        if actor.reference_key in self.by_reference:
            return self.by_reference[actor.reference_key]
        identifiers = extract_identifiers(actor.profile_url, actor.urn)
        for value in identifiers.values:
            if value in self.by_identifier:
                return self.by_identifier[value]
        if actor.profile_url:
            url = actor.profile_url.lower()
            for value, profile_id in self.by_identifier.items():
                if value.lower() in url:
                    return profile_id
        return None


def _dedup_key(actor: RawActor) -> str | None:
    identifiers = extract_identifiers(actor.profile_url, actor.urn)
    return identifiers.dedup_key or normalize_raw_id(actor.urn) or actor.profile_url


def _timestamp_to_datetime(value: int | None) -> datetime | None:
    if not value:
        return None
    # Provider timestamps are epoch milliseconds
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class EngagementImporter:
    """Import one post's scraped reactions or comments.

    Actors are resolved first, one commit per actor, and only then are
    engagement rows written. The old snapshot for (post, user scope) is
    deleted and the new one inserted in a single transaction guarded by a
    timeout on each step.
    """

    def __init__(
        self,
        db: AsyncSession,
        upserter: ProfileUpserter | None = None,
        write_timeout: float | None = None,
    ):
        self.db = db
        self.profiles = ProfileRepository(db)
        self.posts = PostRepository(db)
        self.engagement = EngagementRepository(db)
        self.upserter = upserter or ProfileUpserter(self.profiles)
        self.write_timeout = write_timeout or settings.engagement_write_timeout

    def parse(self, kind: EngagementKind, items: list[dict]) -> tuple[list[RawReaction] | list[RawComment], int]:
        """Validate raw provider items. Returns (valid records, dropped count)."""
        model = _RECORD_MODELS[kind]
        valid = []
        dropped = 0
        for item in items:
            try:
                record = model.model_validate(item)
            except pydantic.ValidationError:
                dropped += 1
                continue
            if not record.is_valid:
                dropped += 1
                continue
            valid.append(record)
        return valid, dropped

    async def import_post(self, kind: EngagementKind, post: Post, items: list[dict]) -> ImportResult:
        post_id, user_id = post.id, post.user_id
        result = ImportResult(post_id=post_id, kind=kind)

        records, result.dropped = self.parse(kind, items)

        # Phase 1: resolve every unique actor
        unique: dict[str, RawActor] = {}
        for record in records:
            actor = record.actor
            unique.setdefault(_dedup_key(actor), actor)

        index = _ActorIndex()
        resolved: set[UUID] = set()
        for key, actor in unique.items():
            try:
                upserted = await self.upserter.upsert(actor)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.warning("Profile upsert failed", post_id=str(post_id), actor=key, error=str(e))
                result.failures.append(ItemFailure.from_error(key, e))
                index.mark_failed(actor)
                continue
            index.add(actor, upserted.profile_id)
            # Distinct actors can resolve to one profile
            if upserted.profile_id in resolved:
                continue
            resolved.add(upserted.profile_id)
            if upserted.created:
                result.created_profile_ids.append(upserted.profile_id)
            if upserted.needs_enrichment:
                result.needs_enrichment_ids.append(upserted.profile_id)
        result.profiles_touched = len(resolved)

        # Phase 2: build rows for actors that resolved
        rows = []
        scraped_at = utcnow()
        for record in records:
            profile_id = index.resolve(record.actor)
            if profile_id is None:
                result.unresolved += 1
                continue
            rows.append(self._row(kind, record, post_id, user_id, profile_id, scraped_at))

        # Phase 3: replace the stored snapshot
        try:
            await asyncio.wait_for(
                self.engagement.delete_for_post(kind, post_id, user_id),
                timeout=self.write_timeout,
            )
        except (asyncio.TimeoutError, SQLAlchemyError) as e:
            await self.db.rollback()
            error = DeleteTimeout("Deleting old engagement rows timed out") if isinstance(e, asyncio.TimeoutError) else e
            logger.error("Engagement delete failed", post_id=str(post_id), kind=kind.value, error=str(error))
            result.failures.append(ItemFailure.from_error(str(post_id), error))

        try:
            result.rows_written = await asyncio.wait_for(
                self._insert_and_mark(kind, post_id, rows),
                timeout=self.write_timeout,
            )
        except asyncio.TimeoutError as e:
            await self.db.rollback()
            raise InsertTimeout(
                "Inserting engagement rows timed out", post_id=str(post_id), kind=kind.value
            ) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise EngagementWriteError(
                f"Inserting engagement rows failed: {e}", post_id=str(post_id), kind=kind.value
            ) from e

        logger.info(
            "Imported engagement",
            post_id=str(post_id),
            kind=kind.value,
            rows=result.rows_written,
            profiles=result.profiles_touched,
            created=len(result.created_profile_ids),
            dropped=result.dropped,
            unresolved=result.unresolved,
        )
        return result

    async def _insert_and_mark(self, kind: EngagementKind, post_id: UUID, rows: list[dict]) -> int:
        written = await self.engagement.insert_many(kind, rows)
        post = await self.posts.get(post_id)
        if post is None:
            raise NotFoundError("Post disappeared during import", post_id=str(post_id))
        await self.posts.mark_scraped(post, kind)
        await self.db.commit()
        return written

    @staticmethod
    def _row(kind, record, post_id: UUID, user_id: UUID, profile_id: UUID, scraped_at: datetime) -> dict:
        if kind == EngagementKind.REACTIONS:
            return {
                "user_id": user_id,
                "post_id": post_id,
                "reactor_profile_id": profile_id,
                "reaction_type": record.reaction_type,
                "scraped_at": scraped_at,
                "page_number": record.metadata.page_number if record.metadata else None,
            }
        posted_at = record.posted_at
        stats = record.stats
        return {
            "user_id": user_id,
            "post_id": post_id,
            "commenter_profile_id": profile_id,
            "comment_id": record.comment_id,
            "comment_text": record.text,
            "comment_url": record.comment_url,
            "posted_at_timestamp": posted_at.timestamp if posted_at else None,
            "posted_at_date": _timestamp_to_datetime(posted_at.timestamp) if posted_at else None,
            "is_edited": record.is_edited,
            "is_pinned": record.is_pinned,
            "total_reactions": (stats.total_reactions or 0) if stats else 0,
            "reactions_breakdown": stats.reactions if stats else None,
            "replies_count": (stats.comments or 0) if stats else 0,
            "scraped_at": scraped_at,
            "page_number": (record.metadata.page_number if record.metadata else None) or 1,
        }
