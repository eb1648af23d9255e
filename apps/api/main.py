"""
ShuttleCoach API
================
Badminton coaching: profiles, coach discovery, video sharing and feedback.

Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from shuttlecoach.config import configure_logging, settings
from shuttlecoach.database import check_database_connection, engine
from shuttlecoach.middleware import setup_middleware
from shuttlecoach.routers import (
    health_router,
    users_router,
    clubs_router,
    coaches_router,
    admin_router,
    video_collections_router,
    coach_collections_router,
    coaching_notes_router,
)

configure_logging()
logger = logging.getLogger("shuttlecoach")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("ShuttleCoach API starting up (%s)", settings.environment)
    await check_database_connection()
    logger.info("Database connection verified")
    yield
    logger.info("ShuttleCoach API shutting down")
    await engine.dispose()


# OpenAPI tags metadata for better documentation
tags_metadata = [
    {
        "name": "Health",
        "description": "Health check and status endpoints",
    },
    {
        "name": "Users",
        "description": "The caller's account, role, club and profiles",
    },
    {
        "name": "Clubs",
        "description": "Clubs and their coaches",
    },
    {
        "name": "Coaches",
        "description": "Coach discovery",
    },
    {
        "name": "Video Collections",
        "description": "Student video collections, media and coach assignment",
    },
    {
        "name": "Coach Collections",
        "description": "Coach media collections and club-scoped sharing",
    },
    {
        "name": "Coaching Notes",
        "description": "Coach feedback on student media",
    },
    {
        "name": "Admin",
        "description": "Admin-only user management",
    },
]


app = FastAPI(
    title="ShuttleCoach API",
    description="""
## Badminton coaching platform

- **Profiles**: students and coaches, lazily provisioned on first request
- **Coach discovery**: search by specialty, teaching style and rate
- **Video collections**: students upload, an assigned coach reviews
- **Coach collections**: coaches share media with their club
- **Coaching notes**: text or YouTube feedback on student media

### Authentication

Identity is supplied by the identity provider's gateway in the
`X-Auth-Subject` header (configurable). Public endpoints need no header.
""",
    version=settings.api_version,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=tags_metadata,
)

setup_middleware(app)


# Include routers
# Health endpoints at root level
app.include_router(health_router)

# API v1 endpoints
app.include_router(users_router, prefix="/api/v1")
app.include_router(clubs_router, prefix="/api/v1")
app.include_router(coaches_router, prefix="/api/v1")
app.include_router(video_collections_router, prefix="/api/v1")
app.include_router(coach_collections_router, prefix="/api/v1")
app.include_router(coaching_notes_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/", response_class=ORJSONResponse)
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "ShuttleCoach API",
        "version": settings.api_version,
        "description": "Badminton coaching: profiles, coach discovery, video sharing and feedback",
        "docs": "/docs",
        "health": "/health",
        "api": {
            "me": "/api/v1/users/me",
            "clubs": "/api/v1/clubs",
            "coaches": "/api/v1/coaches",
            "video_collections": "/api/v1/video-collections",
            "coach_collections": "/api/v1/coach-collections",
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
