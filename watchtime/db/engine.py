"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- async engine for PostgreSQL via asyncpg
- async session factory used by the Pg repos (one session per transaction)
- lifespan hook for startup/shutdown

When DATABASE_URL is None, all exports are None and the app falls back
to in-memory repositories.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from watchtime.core.config import SETTINGS
from watchtime.core.errors import StorageFailure

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


# --- Engine and session factory (None when no DATABASE_URL) ---


def build_engine(url: str) -> AsyncEngine:
    # SQL logging goes through the "sqlalchemy.engine" logger, not echo
    return create_async_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


if SETTINGS.database_url:
    engine: AsyncEngine | None = build_engine(SETTINGS.database_url)
    async_session_factory: async_sessionmaker[AsyncSession] | None = (
        async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    )
else:
    engine = None
    async_session_factory = None


async def ping_database() -> bool:
    """Return True when the configured database answers ``SELECT 1``."""
    if engine is None:
        return False
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True


@asynccontextmanager
async def lifespan_db() -> AsyncGenerator[None, None]:
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string())
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


@asynccontextmanager
async def storage_errors() -> AsyncIterator[None]:
    """Translate driver/ORM failures into StorageFailure.

    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        logger.exception("Storage failure: %s", type(exc).__name__)
        raise StorageFailure() from exc
