"""
FastAPI Dependencies
====================

Common dependencies for dependency injection.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.config import settings
from shuttlecoach.database import async_session_factory
from shuttlecoach.errors import ForbiddenError, UnauthorizedError
from shuttlecoach.models import User, UserType
from shuttlecoach.services import ensure_provisioned


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the authenticated principal to a provisioned User.

    The identity provider's gateway sets the subject header; the first
    request for a subject creates the user and its sub-profile.
    """
    subject = request.headers.get(settings.auth_subject_header)
    if not subject or not subject.strip():
        raise UnauthorizedError(f"Missing identity header ({settings.auth_subject_header})")
    return await ensure_provisioned(db, subject.strip())


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.user_type != UserType.ADMIN:
        raise ForbiddenError("Admin access required")
    return user

