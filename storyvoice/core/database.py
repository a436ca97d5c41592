import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Tuple

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from ..models.base import Base

logger = logging.getLogger(__name__)


def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


async def init_database(
    database_url: str,
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create the async engine and session factory, and create tables"""
    logger.info(f"Initializing database: {database_url}")
    _ensure_sqlite_dir(database_url)

    engine_kwargs = {"echo": False, "pool_pre_ping": True}
    if "sqlite" in database_url:
        engine_kwargs["poolclass"] = NullPool
    engine = create_async_engine(database_url, **engine_kwargs)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    return engine, session_factory


async def close_database(engine: AsyncEngine) -> None:
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker,
) -> AsyncGenerator[AsyncSession, None]:
    """Session context manager that rolls back on error"""
    async with session_factory() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise


async def health_check(session_factory: async_sessionmaker) -> bool:
    """Check if database is accessible"""
    try:
        async with session_scope(session_factory) as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return False
