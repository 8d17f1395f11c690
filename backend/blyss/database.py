"""
Database connection and session management.

This module provides the SQLAlchemy async engine, the session factory, and
schema helpers for the notification store.
"""

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from blyss.config import settings

logger = logging.getLogger(__name__)

# SQLAlchemy declarative base for ORM models
Base = declarative_base()


def create_engine(url: str | None = None) -> AsyncEngine:
    """
    Create and configure async SQLAlchemy engine.

    Args:
        url: Override for settings.database_url

    Returns:
        AsyncEngine: Configured async database engine
    """
    database_url = url or settings.database_url
    options: dict[str, Any] = {"echo": settings.db_echo}

    if not database_url.startswith("sqlite"):
        options["pool_pre_ping"] = True

    engine = create_async_engine(database_url, **options)

    @event.listens_for(engine.sync_engine, "connect")
    def receive_connect(dbapi_conn: Any, connection_record: Any) -> None:
        """Log successful database connections."""
        logger.debug("Database connection established")

    return engine


engine: AsyncEngine = create_engine()

# Async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Prevent lazy-loading issues after commit
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """
    Initialize database schema.

    Creates all tables defined in SQLAlchemy models.
    """
    # Import models so they're registered with Base
    from blyss.orm import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")

