"""
Authorization
=============

Three layers, from pure to storage-backed:
- Role predicates and the capability table derived from the role enum
- Guards: ``can_*`` predicates over already-loaded objects, with
  ``require_*`` twins raising ForbiddenError
- Loaders: ``get_live_*`` fetch a resource and raise NotFoundError when it
  is absent or soft-deleted, so no guard ever sees a deleted resource
"""

import enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shuttlecoach.errors import ForbiddenError, NotFoundError
from shuttlecoach.models import (
    CoachCollectionShare, CoachMedia, CoachMediaCollection, Media,
    MediaCoachNote, User, UserType, VideoCollection,
)


# =============================================================================
# CAPABILITIES
# =============================================================================

class Capability(str, enum.Enum):
    CREATE_VIDEO_COLLECTIONS = "create_video_collections"
    CREATE_COACH_COLLECTIONS = "create_coach_collections"
    COACH_STUDENTS = "coach_students"
    MANAGE_CLUB_COLLECTIONS = "manage_club_collections"
    ADMINISTER = "administer"


ROLE_CAPABILITIES: dict[UserType, frozenset[Capability]] = {
    UserType.STUDENT: frozenset({
        Capability.CREATE_VIDEO_COLLECTIONS,
    }),
    UserType.COACH: frozenset({
        Capability.CREATE_COACH_COLLECTIONS,
        Capability.COACH_STUDENTS,
    }),
    UserType.FACILITY: frozenset({
        Capability.CREATE_COACH_COLLECTIONS,
        Capability.MANAGE_CLUB_COLLECTIONS,
    }),
    UserType.ADMIN: frozenset({
        Capability.CREATE_VIDEO_COLLECTIONS,
        Capability.CREATE_COACH_COLLECTIONS,
        Capability.COACH_STUDENTS,
        Capability.ADMINISTER,
    }),
}


def has_capability(user: Any, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(user.user_type, frozenset())


def require_capability(user: Any, capability: Capability, message: str) -> None:
    if not has_capability(user, capability):
        raise ForbiddenError(message)


# =============================================================================
# ROLE PREDICATES
# =============================================================================

def is_admin(user: Any) -> bool:
    return user.user_type == UserType.ADMIN


def is_coach(user: Any) -> bool:
    return user.user_type == UserType.COACH


def is_student(user: Any) -> bool:
    return user.user_type == UserType.STUDENT


def is_facility(user: Any) -> bool:
    return user.user_type == UserType.FACILITY


def is_coach_or_admin(user: Any) -> bool:
    return user.user_type in (UserType.COACH, UserType.ADMIN)


def are_in_same_club(a: Any, b: Any) -> bool:
    """True only when both users belong to a club and it is the same one."""
    if a is None or b is None:
        return False
    a_club = getattr(a, "club_id", None)
    b_club = getattr(b, "club_id", None)
    return a_club is not None and b_club is not None and a_club == b_club


# =============================================================================
# COACH MEDIA COLLECTION GUARDS
# =============================================================================

def can_modify_coach_collection(user: Any, collection: Any) -> bool:
    """
    Owner coach, ADMIN, or a FACILITY in the owning coach's club.

    ``collection.coach`` must be loaded.
    """
    if collection.coach_id == user.id or is_admin(user):
        return True
    return (
        has_capability(user, Capability.MANAGE_CLUB_COLLECTIONS)
        and are_in_same_club(user, collection.coach)
    )


def can_read_coach_collection(user: Any, collection: Any, has_share: bool) -> bool:
    if can_modify_coach_collection(user, collection):
        return True
    return has_share and user.user_type in (UserType.STUDENT, UserType.COACH)


def require_modify_coach_collection(user: Any, collection: Any) -> None:
    if not can_modify_coach_collection(user, collection):
        raise ForbiddenError("You do not have permission to modify this collection")


def require_read_coach_collection(user: Any, collection: Any, has_share: bool) -> None:
    if not can_read_coach_collection(user, collection, has_share):
        raise ForbiddenError("You do not have permission to view this collection")


# =============================================================================
# VIDEO COLLECTION GUARDS
# =============================================================================

def can_access_video_collection(user: Any, collection: Any) -> bool:
    """Owner, the currently assigned coach, or ADMIN."""
    if is_admin(user) or collection.owner_id == user.id:
        return True
    return collection.assigned_coach_id is not None and collection.assigned_coach_id == user.id


def can_modify_video_collection(user: Any, collection: Any) -> bool:
    return collection.owner_id == user.id or is_admin(user)


def require_access_video_collection(user: Any, collection: Any) -> None:
    if not can_access_video_collection(user, collection):
        raise ForbiddenError("You do not have access to this video collection")


def require_modify_video_collection(user: Any, collection: Any) -> None:
    if not can_modify_video_collection(user, collection):
        raise ForbiddenError("You do not have permission to modify this video collection")


# =============================================================================
# COACHING NOTE GUARDS
# =============================================================================

def can_author_notes(user: Any, collection: Any) -> bool:
    return has_capability(user, Capability.COACH_STUDENTS) and can_access_video_collection(user, collection)


def can_modify_note(user: Any, note: Any) -> bool:
    """Only the note's author or ADMIN."""
    return note.coach_id == user.id or is_admin(user)


def require_author_notes(user: Any, collection: Any) -> None:
    if not can_author_notes(user, collection):
        raise ForbiddenError("Only the assigned coach can add coaching notes to this video")


def require_modify_note(user: Any, note: Any) -> None:
    if not can_modify_note(user, note):
        raise ForbiddenError("You can only update your own coaching notes.")


# =============================================================================
# LOADERS
# =============================================================================

async def get_live_video_collection(db: AsyncSession, collection_id: UUID) -> VideoCollection:
    stmt = select(VideoCollection).where(
        VideoCollection.id == collection_id,
        VideoCollection.is_deleted == False,
    )
    collection = (await db.execute(stmt)).scalar_one_or_none()
    if collection is None:
        raise NotFoundError("Video collection not found")
    return collection


async def get_live_media(db: AsyncSession, media_id: UUID) -> Media:
    """Media item whose collection is also live; its collection is loaded."""
    stmt = (
        select(Media)
        .options(selectinload(Media.collection))
        .join(VideoCollection, Media.collection_id == VideoCollection.id)
        .where(
            Media.id == media_id,
            Media.is_deleted == False,
            VideoCollection.is_deleted == False,
        )
    )
    media = (await db.execute(stmt)).scalar_one_or_none()
    if media is None:
        raise NotFoundError("Media not found")
    return media


async def get_note(db: AsyncSession, note_id: UUID) -> MediaCoachNote:
    """Note whose media and collection are live; media and collection are loaded."""
    stmt = (
        select(MediaCoachNote)
        .options(selectinload(MediaCoachNote.media).selectinload(Media.collection))
        .join(Media, MediaCoachNote.media_id == Media.id)
        .join(VideoCollection, Media.collection_id == VideoCollection.id)
        .where(
            MediaCoachNote.id == note_id,
            Media.is_deleted == False,
            VideoCollection.is_deleted == False,
        )
    )
    note = (await db.execute(stmt)).scalar_one_or_none()
    if note is None:
        raise NotFoundError("Coaching note not found")
    return note


async def get_live_coach_collection(db: AsyncSession, collection_id: UUID) -> CoachMediaCollection:
    """Coach collection with its owning coach loaded."""
    stmt = (
        select(CoachMediaCollection)
        .options(selectinload(CoachMediaCollection.coach))
        .where(
            CoachMediaCollection.id == collection_id,
            CoachMediaCollection.is_deleted == False,
        )
    )
    collection = (await db.execute(stmt)).scalar_one_or_none()
    if collection is None:
        raise NotFoundError("Coach media collection not found")
    return collection


async def get_live_coach_media(db: AsyncSession, media_id: UUID) -> CoachMedia:
    """Coach media item whose collection is live; collection and coach are loaded."""
    stmt = (
        select(CoachMedia)
        .options(selectinload(CoachMedia.collection).selectinload(CoachMediaCollection.coach))
        .join(CoachMediaCollection, CoachMedia.collection_id == CoachMediaCollection.id)
        .where(
            CoachMedia.id == media_id,
            CoachMedia.is_deleted == False,
            CoachMediaCollection.is_deleted == False,
        )
    )
    media = (await db.execute(stmt)).scalar_one_or_none()
    if media is None:
        raise NotFoundError("Coach media not found")
    return media


async def has_share(db: AsyncSession, collection_id: UUID, user_id: UUID) -> bool:
    stmt = select(CoachCollectionShare.id).where(
        CoachCollectionShare.collection_id == collection_id,
        CoachCollectionShare.shared_with_id == user_id,
    )
    return (await db.execute(stmt)).first() is not None


async def check_coach_collection_read(
    db: AsyncSession, user: User, collection: CoachMediaCollection
) -> None:
    """Raise ForbiddenError unless the user may read the collection."""
    if can_modify_coach_collection(user, collection):
        return
    shared = await has_share(db, collection.id, user.id)
    require_read_coach_collection(user, collection, shared)
