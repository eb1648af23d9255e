"""
ShuttleCoach API Routers
========================

All API routers for the ShuttleCoach API.
"""

from shuttlecoach.routers.health import router as health_router
from shuttlecoach.routers.users import router as users_router
from shuttlecoach.routers.clubs import router as clubs_router
from shuttlecoach.routers.coaches import router as coaches_router
from shuttlecoach.routers.admin import router as admin_router
from shuttlecoach.routers.video_collections import router as video_collections_router
from shuttlecoach.routers.coach_collections import router as coach_collections_router
from shuttlecoach.routers.coaching_notes import router as coaching_notes_router

__all__ = [
    "health_router",
    "users_router",
    "clubs_router",
    "coaches_router",
    "admin_router",
    "video_collections_router",
    "coach_collections_router",
    "coaching_notes_router",
]
