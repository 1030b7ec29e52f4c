"""Tracked post model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from socialsignals.models.base import Base, TimestampMixin


class Post(TimestampMixin, Base):
    """A post whose reactions and comments are tracked for one user."""

    __tablename__ = "posts"

    # Owner; engagement rows are scoped by (post, user)
    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)

    post_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    post_id: Mapped[str | None] = mapped_column(String(50), index=True)  # e.g. "7302346926123798528"
    post_urn: Mapped[str | None] = mapped_column(String(255))

    # Author
    author_name: Mapped[str | None] = mapped_column(String(500))
    author_profile_url: Mapped[str | None] = mapped_column(String(1000))
    author_profile_id: Mapped[str | None] = mapped_column(String(255))

    # Content & stats
    post_text: Mapped[str | None] = mapped_column(Text)
    num_likes: Mapped[int] = mapped_column(Integer, default=0)
    num_comments: Mapped[int] = mapped_column(Integer, default=0)
    num_shares: Mapped[int] = mapped_column(Integer, default=0)
    posted_at_timestamp: Mapped[int | None] = mapped_column(BigInteger)

    # Scrape tracking
    last_reactions_scrape: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_comments_scrape: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    engagement_needs_scraping: Mapped[bool] = mapped_column(Boolean, default=False)
    engagement_last_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, url='{self.post_url}')>"
