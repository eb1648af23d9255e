"""
Health Check Router
===================

Provides health, readiness, and liveness endpoints.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.config import settings
from shuttlecoach.dependencies import get_db
from shuttlecoach.schemas import HealthResponse, ReadyResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _database_ok(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return False


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint.

    Reports the database status; the service is "degraded" when the
    database is unreachable.
    """
    db_status = "healthy" if await _database_ok(db) else "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=settings.api_version,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        environment=settings.environment,
    )


@router.get("/ready", response_model=ReadyResponse)
async def readiness_check(db: AsyncSession = Depends(get_db)) -> ReadyResponse:
    """Readiness probe: true only if all critical dependencies are available."""
    checks = {"database": await _database_ok(db)}
    return ReadyResponse(ready=all(checks.values()), checks=checks)


@router.get("/live")
async def liveness_check() -> dict:
    """Liveness probe."""
    return {"alive": True}
