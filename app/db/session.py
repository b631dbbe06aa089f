"""Async database engine and session handling.

The engine is created lazily from ``Settings.database_url`` (PostgreSQL via
asyncpg).
"""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


_engine: AsyncEngine | None = None
_async_session_maker: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {
        "echo": settings.log_level == "DEBUG",
        "pool_pre_ping": True,
    }
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return options


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Return the shared async engine, creating it on first use."""
    global _engine

    if _engine is None:
        settings = settings or get_settings()
        logger.info(f"Creating async database engine for {settings.database_url.split('@')[-1]}")
        try:
            _engine = create_async_engine(settings.database_url, **_engine_options(settings))
        except Exception as e:
            logger.error(f"Failed to create database engine: {e}", exc_info=True)
            raise

    return _engine


def get_session_maker(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            get_engine(settings),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.debug("Session maker created")

    return _async_session_maker


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session that rolls back on error.

    Example:
        ```python
        @router.get("/definitions")
        async def read(session: AsyncSession = Depends(get_async_session)):
            return await SqlDefinitionRepository(session).load("feed", "conn")
        ```
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}", exc_info=True)
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise


async def create_all_tables(settings: Settings | None = None) -> None:
    """Create missing tables. Existing tables are left untouched."""
    # Registers the table classes on SQLModel.metadata
    from app.db import models  # noqa: F401

    engine = get_engine(settings)
    logger.info("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables ready")


async def drop_all_tables(settings: Settings | None = None) -> None:
    """Drop every table. Intended for development resets only."""
    from app.db import models  # noqa: F401

    engine = get_engine(settings)
    logger.warning("Dropping all database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    logger.warning("All database tables dropped")


async def init_db(settings: Settings | None = None) -> None:
    try:
        await create_all_tables(settings)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        raise


async def close_db() -> None:
    """Dispose the engine and forget the session maker."""
    global _engine, _async_session_maker

    if _engine is not None:
        logger.info("Closing database engine...")
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
