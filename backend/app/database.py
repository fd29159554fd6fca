"""
Database connection and session management.

Key concepts:
- We use SQLAlchemy 2.0's async API (asyncpg in production, aiosqlite
  for local runs and the test suite)
- AsyncSession gives us non-blocking database calls
- get_db() is a "dependency" that FastAPI injects into route handlers —
  it provides a session and ensures cleanup after each request
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    """Pool settings per driver.

    SQLite connections are cheap and bound to the event loop that opened
    them, so we don't pool them at all.
    """
    if url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {"pool_size": 5, "max_overflow": 10}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    **_engine_options(settings.DATABASE_URL),
)

# expire_on_commit=False means objects stay usable after commit
# (without this, accessing an attribute after commit triggers a lazy load,
#  which fails with async)
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db():
    """FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create all tables defined by our models.

    Called once at startup. In production, you'd use Alembic migrations
    instead, but for MVP this is simpler.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
