"""Shared fixtures: in-memory SQLite store and an API client bound to it."""

import asyncio
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from socialsignals.models import Base
from socialsignals.repositories.post_repo import PostRepository
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.services.enrichment.provider import EnrichmentOutcome


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(session_maker):
    from socialsignals.api.deps import get_db
    from socialsignals.main import app

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def make_profile(session):
    """Insert and commit a profile."""

    async def _make(urn: str, **fields):
        profile = await ProfileRepository(session).create(urn=urn, **fields)
        await session.commit()
        return profile

    return _make


@pytest.fixture
def make_post(session):
    """Insert and commit a tracked post."""

    async def _make(post_url: str = "https://www.linkedin.com/posts/activity-7302346926123798528", **fields):
        post = await PostRepository(session).create(user_id=fields.pop("user_id", uuid4()), post_url=post_url, **fields)
        await session.commit()
        return post

    return _make


def reaction_item(handle: str | None, name: str = "Someone", headline: str = "Engineer", reaction_type: str = "LIKE"):
    """Reactions dataset item for the actor at ``/in/<handle>``."""
    profile_url = f"https://www.linkedin.com/in/{handle}" if handle else None
    return {
        "reaction_type": reaction_type,
        "reactor": {"name": name, "headline": headline, "profile_url": profile_url},
        "_metadata": {"page_number": 1},
    }


def comment_item(handle: str, comment_id: str, text: str = "Great post", name: str = "Someone"):
    """Comments dataset item authored by the actor at ``/in/<handle>``."""
    return {
        "comment_id": comment_id,
        "text": text,
        "comment_url": f"https://www.linkedin.com/feed/update/urn:li:activity:1?commentUrn={comment_id}",
        "posted_at": {"timestamp": 1735689600000, "date": "2025-01-01 00:00:00"},
        "is_edited": False,
        "is_pinned": False,
        "author": {
            "name": name,
            "headline": "Engineer",
            "profile_url": f"https://www.linkedin.com/in/{handle}",
        },
        "stats": {"total_reactions": 3, "reactions": {"like": 3}, "comments": 1},
    }


class FakeEnricher:
    """Answers lookups from a fixed table; unknown keys are not found."""

    def __init__(self, profiles: dict | None = None, delays: dict | None = None):
        self.profiles = profiles or {}
        self.delays = delays or {}
        self.calls: list[list[str]] = []
        self.cancelled = False

    async def enrich_profiles(self, lookup_keys: list[str]) -> dict[str, EnrichmentOutcome]:
        self.calls.append(list(lookup_keys))
        delay = max((self.delays.get(k, 0) for k in lookup_keys), default=0)
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        outcomes = {}
        for key in lookup_keys:
            if key in self.profiles:
                outcomes[key] = EnrichmentOutcome.found(key, self.profiles[key])
            else:
                outcomes[key] = EnrichmentOutcome.not_found(key)
        return outcomes


class ListSink:
    """Collects progress events in memory."""

    def __init__(self):
        self.events = []

    async def emit(self, event) -> None:
        self.events.append(event)
