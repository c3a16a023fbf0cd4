"""Database connection and session management for PostgreSQL."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.shared.config import get_settings

logger = logging.getLogger(__name__)


# ===================
# SQLAlchemy Base
# ===================


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


# ===================
# PostgreSQL
# ===================

# Engines are tracked per event loop to avoid cross-loop connection reuse
_engines: dict[int, AsyncEngine] = {}
_session_factories: dict[int, async_sessionmaker[AsyncSession]] = {}


def _get_loop_id() -> int:
    """Get current event loop ID for tracking connections."""
    try:
        loop = asyncio.get_running_loop()
        return id(loop)
    except RuntimeError:
        return 0


def get_engine() -> AsyncEngine:
    """Get SQLAlchemy async engine for current event loop."""
    loop_id = _get_loop_id()

    if _engines.get(loop_id) is None:
        settings = get_settings()
        _engines[loop_id] = create_async_engine(
            settings.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )
    return _engines[loop_id]


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get SQLAlchemy session factory for current event loop."""
    loop_id = _get_loop_id()

    if _session_factories.get(loop_id) is None:
        _session_factories[loop_id] = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factories[loop_id]


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session context manager.

    Usage:
        async with get_db_session() as session:
            result = await session.execute(query)
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize database tables.

    In production, use migrations instead.
    """
    # Register models on Base.metadata
    import src.modules.exam.models  # noqa: F401
    import src.modules.practice.models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections.

    Call this on application shutdown.
    """
    for engine in list(_engines.values()):
        try:
            await engine.dispose()
        except Exception as e:
            logger.warning(f"Error disposing database engine: {e}")
    _engines.clear()
    _session_factories.clear()


# ===================
# Lifecycle Helpers
# ===================


async def check_db_health(max_retries: int = 3, retry_delay: float = 1.0) -> bool:
    """Check database health with retries.

    Args:
        max_retries: Maximum number of retry attempts
        retry_delay: Delay between retries in seconds

    Returns:
        True if database is healthy, False otherwise
    """
    for attempt in range(max_retries):
        try:
            engine = get_engine()
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.debug("Database health check passed")
            return True
        except Exception as e:
            logger.warning(f"Database health check failed (attempt {attempt + 1}/{max_retries}): {e}")
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay)
    return False


async def startup() -> None:
    """Verify the database connection on application startup."""
    if not await check_db_health(max_retries=5, retry_delay=2.0):
        raise RuntimeError("Failed to connect to database after retries")

    logger.info("Database connection initialized successfully")


async def shutdown() -> None:
    """Close all connections on application shutdown."""
    await close_db()
    logger.info("Database connections closed")
