"""Post repository for data access."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialsignals.models.base import utcnow
from socialsignals.models.engagement import EngagementKind
from socialsignals.models.post import Post


class PostRepository:
    """Repository for tracked posts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, post_id: UUID) -> Post | None:
        result = await self.db.execute(select(Post).where(Post.id == post_id))
        return result.scalar_one_or_none()

    async def get_many(self, post_ids: Iterable[UUID]) -> list[Post]:
        ids = list(dict.fromkeys(post_ids))
        if not ids:
            return []
        result = await self.db.execute(select(Post).where(Post.id.in_(ids)))
        return list(result.scalars().all())

    async def create(self, user_id: UUID, post_url: str, **fields) -> Post:
        post = Post(user_id=user_id, post_url=post_url, **fields)

        self.db.add(post)
        await self.db.flush()
        await self.db.refresh(post)

        return post

    async def mark_scraped(self, post: Post, kind: EngagementKind) -> Post:
        """Stamp the scrape time for ``kind`` and clear the rescrape flag."""
        now = utcnow()
        if kind == EngagementKind.REACTIONS:
            post.last_reactions_scrape = now
        else:
            post.last_comments_scrape = now
        post.engagement_needs_scraping = False
        post.engagement_last_updated_at = now

        await self.db.flush()

        return post
