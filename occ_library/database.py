"""
Database setup for the library catalog.

PostgreSQL through asyncpg in production. SQLite URLs (aiosqlite) work for
local runs; an in-memory SQLite database is kept on one shared connection
so the tables created at startup stay visible to every session.
"""
import logging
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict:
    """Engine keyword arguments for a database URL."""
    url = make_url(database_url)
    options = {"echo": settings.app_env == "development"}

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        return options

    options.update(pool_pre_ping=True, pool_size=5, max_overflow=10)
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """Create the users, programs and ebooks tables if they don't exist."""
    # Registers the models on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


async def close_db():
    """Dispose of the engine's connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
