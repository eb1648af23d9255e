"""
Admin Router
============

Admin-only user management: listing users and setting role or club.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.database import commit_or_fail
from shuttlecoach.dependencies import get_db, require_admin
from shuttlecoach.errors import NotFoundError
from shuttlecoach.models import User, UserType
from shuttlecoach.schemas import AdminUserUpdate, UserBrief, UserRead
from shuttlecoach.services import (
    ensure_sub_profiles, get_user, set_user_type, shape_user, validate_and_get_club,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=List[UserBrief])
async def list_users(
    club_id: Optional[str] = Query(None),
    user_type: Optional[UserType] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[UserBrief]:
    stmt = select(User).order_by(User.created_at, User.id)
    if club_id is not None:
        stmt = stmt.where(User.club_id == club_id)
    if user_type is not None:
        stmt = stmt.where(User.user_type == user_type)
    result = await db.execute(stmt)
    return [UserBrief.model_validate(u) for u in result.scalars().all()]


@router.put("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: UUID,
    body: AdminUserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """
    Set the role and/or club of any user.

    Sending ``"club_id": null`` removes the club membership.
    """
    target = await get_user(db, user_id)
    if target is None:
        raise NotFoundError("User not found")

    if "club_id" in body.model_fields_set:
        if body.club_id is None:
            target.club_id = None
        else:
            target.club_id = (await validate_and_get_club(db, body.club_id)).id

    if body.user_type is not None and body.user_type != target.user_type:
        target = await set_user_type(db, target, body.user_type)
    else:
        await commit_or_fail(db, "update user")
        target = await ensure_sub_profiles(db, await get_user(db, target.id))

    logger.info(
        "Admin %s updated user %s: type=%s club=%s",
        admin.id, target.id, target.user_type.value, target.club_id,
    )
    return shape_user(target)
