"""Engagement models: reactions and comments on tracked posts."""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from socialsignals.models.base import Base, JSONBType, utcnow


class EngagementKind(str, enum.Enum):
    """Interaction kind."""

    REACTIONS = "reactions"
    COMMENTS = "comments"


class Reaction(Base):
    """One actor's reaction to one tracked post."""

    __tablename__ = "reactions"

    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    post_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reactor_profile_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    reaction_type: Mapped[str] = mapped_column(String(50), nullable=False)  # LIKE, PRAISE, ...
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    page_number: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<Reaction(post_id={self.post_id}, profile={self.reactor_profile_id}, type='{self.reaction_type}')>"


class Comment(Base):
    """One comment on one tracked post."""

    __tablename__ = "comments"

    user_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    post_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    commenter_profile_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    comment_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    comment_text: Mapped[str | None] = mapped_column(Text)
    comment_url: Mapped[str | None] = mapped_column(String(1000))
    posted_at_timestamp: Mapped[int | None] = mapped_column(BigInteger)
    posted_at_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    total_reactions: Mapped[int] = mapped_column(Integer, default=0)
    reactions_breakdown: Mapped[dict | None] = mapped_column(JSONBType)
    replies_count: Mapped[int] = mapped_column(Integer, default=0)
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    page_number: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<Comment(post_id={self.post_id}, comment_id='{self.comment_id}')>"
