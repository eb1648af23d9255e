"""
Database configuration and session management.
"""

import logging
from typing import Any, Iterable, Sequence

from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shuttlecoach.config import settings
from shuttlecoach.errors import InternalError

logger = logging.getLogger(__name__)


def _engine_options() -> dict[str, Any]:
    if settings.is_sqlite:
        return {"echo": settings.debug}
    return {
        "echo": settings.debug,
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
    }


# Create async engine
engine = create_async_engine(settings.async_database_url, **_engine_options())

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def insert_ignoring_conflicts(
    db: AsyncSession,
    model: type[Base],
    rows: Sequence[dict[str, Any]],
    index_elements: Iterable[str],
):
    """
    Build a bulk INSERT ... ON CONFLICT DO NOTHING for the session's dialect.

    The unique constraint named by ``index_elements`` is the only guard
    against duplicate rows; concurrent writers race on it, not on a lock.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(model)
    elif dialect == "sqlite":
        stmt = sqlite.insert(model)
    else:
        raise NotImplementedError(f"Unsupported dialect for upserts: {dialect}")
    return stmt.values(list(rows)).on_conflict_do_nothing(index_elements=list(index_elements))


async def execute_or_fail(db: AsyncSession, stmt, action: str):
    """Execute a write statement, surfacing storage failures as InternalError."""
    try:
        return await db.execute(stmt)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to %s", action)
        raise InternalError(f"Failed to {action}. Please try again.")


async def commit_or_fail(db: AsyncSession, action: str) -> None:
    """Commit the unit of work, surfacing storage failures as InternalError."""
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to %s", action)
        raise InternalError(f"Failed to {action}. Please try again.")


async def check_database_connection() -> bool:
    """Verify database connection is working."""
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        raise
