"""Engagement repository: reactions and comments."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.models.engagement import Comment, EngagementKind, Reaction

_MODELS = {
    EngagementKind.REACTIONS: (Reaction, Reaction.reactor_profile_id),
    EngagementKind.COMMENTS: (Comment, Comment.commenter_profile_id),
}


class EngagementRepository:
    """Bulk reads and writes over the engagement tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def delete_for_post(self, kind: EngagementKind, post_id: UUID, user_id: UUID) -> int:
        """Remove every stored row of ``kind`` for (post, user scope)."""
        model, _ = _MODELS[kind]
        result = await self.db.execute(
            delete(model).where(model.post_id == post_id, model.user_id == user_id)
        )
        return result.rowcount or 0

    async def insert_many(self, kind: EngagementKind, rows: list[dict]) -> int:
        model, _ = _MODELS[kind]
        if not rows:
            return 0
        self.db.add_all([model(**row) for row in rows])
        await self.db.flush()
        return len(rows)

    async def list_for_post(self, kind: EngagementKind, post_id: UUID) -> list[Reaction] | list[Comment]:
        model, _ = _MODELS[kind]
        result = await self.db.execute(select(model).where(model.post_id == post_id))
        return list(result.scalars().all())

    async def count_for_profiles(self, profile_ids: Iterable[UUID]) -> int:
        """Reaction plus comment rows referencing any of the profiles."""
        ids = list(profile_ids)
        if not ids:
            return 0
        total = 0
        for model, column in _MODELS.values():
            result = await self.db.execute(
                select(func.count()).select_from(model).where(column.in_(ids))
            )
            total += result.scalar_one()
        return total

    async def repoint(self, from_profile_ids: Iterable[UUID], to_profile_id: UUID) -> int:
        """Move every engagement row from the given profiles onto ``to_profile_id``."""
        ids = list(from_profile_ids)
        if not ids:
            return 0
        moved = 0
        for model, column in _MODELS.values():
            result = await self.db.execute(
                update(model)
                .where(column.in_(ids))
                .values({column.key: to_profile_id})
                .execution_options(synchronize_session=False)
            )
            moved += result.rowcount or 0
        return moved
