"""Database engine and session factory."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from socialsignals.config import settings


def build_engine(url: str | None = None) -> AsyncEngine:
    """Create the async engine. Pool sizing only applies to server databases."""
    url = url or settings.database_url
    options: dict = {"echo": settings.database_echo}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return create_async_engine(url, **options)


async_engine = build_engine()

# Instances stay usable after commit; every unit of work commits on its own
async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def ping(engine: AsyncEngine | None = None) -> None:
    """Round trip to the database. Raises when it is unreachable."""
    async with (engine or async_engine).connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_db() -> None:
    """Verify the database is reachable at startup."""
    await ping()


async def close_db() -> None:
    """Close database connections."""
    await async_engine.dispose()
