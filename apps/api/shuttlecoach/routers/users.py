"""
Users Router
============

The caller's own account:
- Profile read and basic field updates
- Self-service role switch (STUDENT <-> COACH)
- Club onboarding
- Student / coach sub-profile updates and images
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.config import settings
from shuttlecoach.database import commit_or_fail
from shuttlecoach.dependencies import get_current_user, get_db
from shuttlecoach.errors import ForbiddenError
from shuttlecoach.images import decode_image
from shuttlecoach.models import User, UserType
from shuttlecoach.permissions import is_admin
from shuttlecoach.schemas import (
    ClubMembershipUpdate, CoachProfileUpdate, ImageUpload, StudentProfileUpdate,
    UserRead, UserTypeUpdate, UserUpdate,
)
from shuttlecoach.services import (
    apply_changes, collect_changes, ensure_sub_profiles, get_user, set_user_type, shape_user,
    validate_and_get_club,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

SELF_SERVICE_TYPES = {UserType.STUDENT, UserType.COACH}


@router.get("/me", response_model=UserRead)
async def get_me(user: User = Depends(get_current_user)) -> UserRead:
    """The caller with the sub-profile(s) matching their role."""
    return shape_user(user)


@router.patch("/me", response_model=UserRead)
async def update_me(
    body: UserUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    apply_changes(user, collect_changes(body))
    await commit_or_fail(db, "update user")
    return shape_user(await get_user(db, user.id))


@router.put("/me/user-type", response_model=UserRead)
async def update_my_user_type(
    body: UserTypeUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """
    Switch between STUDENT and COACH.

    ADMIN and FACILITY roles are assigned by an admin only.
    """
    if user.user_type not in SELF_SERVICE_TYPES or body.user_type not in SELF_SERVICE_TYPES:
        raise ForbiddenError("Only an admin can assign this user type", field="user_type")
    if body.user_type == user.user_type:
        return shape_user(user)
    return shape_user(await set_user_type(db, user, body.user_type))


@router.put("/me/club", response_model=UserRead)
async def join_club(
    body: ClubMembershipUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """Join a club during onboarding. Changing an existing membership is admin-only."""
    if user.club_id is not None and not is_admin(user):
        raise ForbiddenError("Only an admin can change club membership", field="club_id")
    club = await validate_and_get_club(db, body.club_id)

    user.club_id = club.id
    await commit_or_fail(db, "join club")
    logger.info("User %s joined club %s", user.id, club.id)
    return shape_user(await get_user(db, user.id))


@router.put("/me/student-profile", response_model=UserRead)
async def update_student_profile(
    body: StudentProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    if user.user_type not in (UserType.STUDENT, UserType.ADMIN):
        raise ForbiddenError("Only students can edit a student profile")
    user = await ensure_sub_profiles(db, user)

    apply_changes(user.student_profile, collect_changes(body))
    await commit_or_fail(db, "update student profile")
    return shape_user(await get_user(db, user.id))


@router.put("/me/coach-profile", response_model=UserRead)
async def update_coach_profile(
    body: CoachProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    if user.user_type not in (UserType.COACH, UserType.ADMIN):
        raise ForbiddenError("Only coaches can edit a coach profile")
    user = await ensure_sub_profiles(db, user)

    changes = collect_changes(body, required=("rate", "specialties", "teaching_styles"))
    apply_changes(user.coach_profile, changes)
    await commit_or_fail(db, "update coach profile")
    return shape_user(await get_user(db, user.id))


@router.put("/me/profile-image", response_model=UserRead)
async def upload_profile_image(
    body: ImageUpload,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """Store the profile image on every sub-profile the caller's role has."""
    if user.user_type == UserType.FACILITY:
        raise ForbiddenError("Facility accounts have no profile image")
    data, mime = decode_image(body.image, settings.profile_image_max_bytes)
    user = await ensure_sub_profiles(db, user)

    if user.user_type in (UserType.STUDENT, UserType.ADMIN):
        user.student_profile.profile_image = data
        user.student_profile.profile_image_type = mime
    if user.user_type in (UserType.COACH, UserType.ADMIN):
        user.coach_profile.profile_image = data
        user.coach_profile.profile_image_type = mime
    await commit_or_fail(db, "update profile image")
    return shape_user(await get_user(db, user.id))


@router.put("/me/coach-header-image", response_model=UserRead)
async def upload_coach_header_image(
    body: ImageUpload,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    if user.user_type not in (UserType.COACH, UserType.ADMIN):
        raise ForbiddenError("Only coaches have a header image")
    data, mime = decode_image(body.image, settings.header_image_max_bytes)
    user = await ensure_sub_profiles(db, user)

    user.coach_profile.header_image = data
    user.coach_profile.header_image_type = mime
    await commit_or_fail(db, "update header image")
    return shape_user(await get_user(db, user.id))
