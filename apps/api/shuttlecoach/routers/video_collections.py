"""
Video Collections Router
========================

Student-owned video collections:
- Create (students for themselves, admins on behalf of a student)
- Read, update, soft delete and restore
- Media items with the URL video cap
- Coach assignment
- Coach review queue
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import or_, select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shuttlecoach.database import commit_or_fail
from shuttlecoach.dependencies import get_current_user, get_db, require_admin
from shuttlecoach.errors import BadRequestError, ForbiddenError, NotFoundError
from shuttlecoach.models import Media, MediaType, User, UserType, VideoCollection
from shuttlecoach.permissions import (
    Capability, are_in_same_club, get_live_media, get_live_video_collection,
    has_capability, is_admin, require_access_video_collection,
    require_capability, require_modify_video_collection,
)
from shuttlecoach.schemas import (
    CoachAssignment, MediaCreate, MediaDetail, MediaRead, MediaUpdate,
    UserBrief, VideoCollectionCreate, VideoCollectionDetail,
    VideoCollectionRead, VideoCollectionUpdate,
)
from shuttlecoach.services import apply_changes, check_media_cap, collect_changes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/video-collections", tags=["Video Collections"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _load_collection_any_state(db: AsyncSession, collection_id: UUID) -> VideoCollection:
    collection = await db.get(VideoCollection, collection_id)
    if collection is None:
        raise NotFoundError("Video collection not found")
    return collection


async def _load_media_any_state(db: AsyncSession, media_id: UUID) -> Media:
    """Media item in a live collection, deleted or not."""
    stmt = (
        select(Media)
        .options(selectinload(Media.collection))
        .join(VideoCollection, Media.collection_id == VideoCollection.id)
        .where(Media.id == media_id, VideoCollection.is_deleted == False)
    )
    media = (await db.execute(stmt)).scalar_one_or_none()
    if media is None:
        raise NotFoundError("Media not found")
    return media


# =============================================================================
# COLLECTIONS
# =============================================================================

@router.post("", response_model=VideoCollectionRead, status_code=status.HTTP_201_CREATED)
async def create_video_collection(
    body: VideoCollectionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> VideoCollectionRead:
    """
    Create a video collection.

    Students create for themselves. An admin may pass ``owner_id`` to upload
    on behalf of a student; the admin is recorded as the uploader.
    """
    owner_id = user.id
    uploaded_by_id = None

    if body.owner_id is not None and body.owner_id != user.id:
        if not is_admin(user):
            raise ForbiddenError("Students cannot create video collections for other users.", field="owner_id")
        owner = await db.get(User, body.owner_id)
        if owner is None:
            raise NotFoundError("Selected student not found", field="owner_id")
        if owner.user_type != UserType.STUDENT:
            raise BadRequestError("Owner must be a student", field="owner_id")
        owner_id = owner.id
        uploaded_by_id = user.id
    else:
        require_capability(
            user, Capability.CREATE_VIDEO_COLLECTIONS, "Only students can create video collections"
        )

    collection = VideoCollection(
        owner_id=owner_id,
        uploaded_by_id=uploaded_by_id,
        title=body.title.strip(),
        description=body.description,
        media_type=body.media_type,
    )
    db.add(collection)
    await commit_or_fail(db, "create video collection")
    logger.info("Video collection %s created for %s by %s", collection.id, owner_id, user.id)
    return VideoCollectionRead.model_validate(collection)


@router.get("", response_model=List[VideoCollectionRead])
async def list_video_collections(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[VideoCollectionRead]:
    """ADMIN sees every live collection, a COACH those assigned to them, anyone else their own."""
    stmt = (
        select(VideoCollection)
        .where(VideoCollection.is_deleted == False)
        .order_by(VideoCollection.created_at.desc())
    )
    if user.user_type == UserType.COACH:
        stmt = stmt.where(VideoCollection.assigned_coach_id == user.id)
    elif not is_admin(user):
        stmt = stmt.where(VideoCollection.owner_id == user.id)

    result = await db.execute(stmt)
    return [VideoCollectionRead.model_validate(c) for c in result.scalars().all()]


@router.get("/eligible-owners", response_model=List[UserBrief])
async def list_eligible_owners(
    query: Optional[str] = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[UserBrief]:
    """Students an admin can upload on behalf of."""
    stmt = (
        select(User)
        .where(User.user_type == UserType.STUDENT)
        .order_by(User.first_name, User.last_name, User.id)
        .limit(limit)
    )
    if query and query.strip():
        pattern = f"%{query.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(User.email).like(pattern),
            )
        )
    result = await db.execute(stmt)
    return [UserBrief.model_validate(u) for u in result.scalars().all()]


# =============================================================================
# MEDIA
# =============================================================================

@router.get("/media/review", response_model=List[MediaRead])
async def list_media_for_review(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[MediaRead]:
    """Live media awaiting review: all for ADMIN, assigned collections only for a COACH."""
    require_capability(user, Capability.COACH_STUDENTS, "Only coaches can review media")

    stmt = (
        select(Media)
        .join(VideoCollection, Media.collection_id == VideoCollection.id)
        .where(Media.is_deleted == False, VideoCollection.is_deleted == False)
        .order_by(Media.created_at.desc())
    )
    if not is_admin(user):
        stmt = stmt.where(VideoCollection.assigned_coach_id == user.id)

    result = await db.execute(stmt)
    return [MediaRead.model_validate(m) for m in result.scalars().all()]


@router.get("/media/{media_id}", response_model=MediaDetail)
async def get_media(
    media_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MediaDetail:
    media = await get_live_media(db, media_id)
    require_access_video_collection(user, media.collection)

    stmt = (
        select(Media)
        .options(selectinload(Media.coaching_notes))
        .where(Media.id == media.id)
    )
    media = (await db.execute(stmt)).scalar_one()
    return MediaDetail.model_validate(media)


@router.patch("/media/{media_id}", response_model=MediaRead)
async def update_media(
    media_id: UUID,
    body: MediaUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MediaRead:
    media = await get_live_media(db, media_id)
    require_modify_video_collection(user, media.collection)

    apply_changes(media, collect_changes(body, required=("title",)))
    await commit_or_fail(db, "update media")
    return MediaRead.model_validate(media)


@router.delete("/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_media(
    media_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    media = await _load_media_any_state(db, media_id)
    require_modify_video_collection(user, media.collection)
    if media.is_deleted:
        raise BadRequestError("Media is already deleted")

    media.is_deleted = True
    media.deleted_at = _now()
    await commit_or_fail(db, "delete media")
    logger.info("Media %s deleted by %s", media.id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/media/{media_id}/restore", response_model=MediaRead)
async def restore_media(
    media_id: UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MediaRead:
    media = await _load_media_any_state(db, media_id)
    if not media.is_deleted:
        raise BadRequestError("Media is not deleted")
    await check_media_cap(db, media.collection, Media)

    media.is_deleted = False
    media.deleted_at = None
    await commit_or_fail(db, "restore media")
    logger.info("Media %s restored by %s", media.id, admin.id)
    return MediaRead.model_validate(media)


# =============================================================================
# SINGLE COLLECTION
# =============================================================================

@router.get("/{collection_id}", response_model=VideoCollectionDetail)
async def get_video_collection(
    collection_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> VideoCollectionDetail:
    """Collection with its live media and their coaching notes, newest note first."""
    collection = await get_live_video_collection(db, collection_id)
    require_access_video_collection(user, collection)

    stmt = (
        select(Media)
        .options(selectinload(Media.coaching_notes))
        .where(Media.collection_id == collection.id, Media.is_deleted == False)
        .order_by(Media.created_at, Media.id)
    )
    media = (await db.execute(stmt)).scalars().all()

    return VideoCollectionDetail(
        **VideoCollectionRead.model_validate(collection).model_dump(),
        media=[MediaDetail.model_validate(m) for m in media],
    )


@router.patch("/{collection_id}", response_model=VideoCollectionRead)
async def update_video_collection(
    collection_id: UUID,
    body: VideoCollectionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> VideoCollectionRead:
    collection = await get_live_video_collection(db, collection_id)
    require_modify_video_collection(user, collection)

    apply_changes(collection, collect_changes(body, required=("title",)))
    await commit_or_fail(db, "update video collection")
    return VideoCollectionRead.model_validate(collection)


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_video_collection(
    collection_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    collection = await get_live_video_collection(db, collection_id)
    require_modify_video_collection(user, collection)

    collection.is_deleted = True
    collection.deleted_at = _now()
    await commit_or_fail(db, "delete video collection")
    logger.info("Video collection %s deleted by %s", collection.id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{collection_id}/restore", response_model=VideoCollectionRead)
async def restore_video_collection(
    collection_id: UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> VideoCollectionRead:
    collection = await _load_collection_any_state(db, collection_id)
    if not collection.is_deleted:
        raise BadRequestError("Video collection is not deleted")

    collection.is_deleted = False
    collection.deleted_at = None
    await commit_or_fail(db, "restore video collection")
    logger.info("Video collection %s restored by %s", collection.id, admin.id)
    return VideoCollectionRead.model_validate(collection)


@router.post("/{collection_id}/media", response_model=MediaRead, status_code=status.HTTP_201_CREATED)
async def add_media(
    collection_id: UUID,
    body: MediaCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MediaRead:
    """
    Add a media item.

    URL_VIDEO items need ``video_url`` and a collection holds at most three
    live ones; FILE_VIDEO items need ``file_key``.
    """
    collection = await get_live_video_collection(db, collection_id)
    require_modify_video_collection(user, collection)

    if collection.media_type == MediaType.URL_VIDEO:
        if not body.video_url or not body.video_url.strip():
            raise BadRequestError("URL is required for URL video collections", field="video_url")
        await check_media_cap(db, collection, Media)
    elif not body.file_key:
        raise BadRequestError("File information is required for file video collections", field="file_key")

    media = Media(collection_id=collection.id, **body.model_dump())
    db.add(media)
    await commit_or_fail(db, "add media")
    logger.info("Media %s added to video collection %s", media.id, collection.id)
    return MediaRead.model_validate(media)


# =============================================================================
# COACH ASSIGNMENT
# =============================================================================

@router.put("/{collection_id}/coach", response_model=VideoCollectionRead)
async def assign_coach(
    collection_id: UUID,
    body: CoachAssignment,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> VideoCollectionRead:
    """
    Assign, replace or clear the collection's coach.

    The new coach must be a COACH or ADMIN in the owner's club. Any failure
    leaves the current assignment in place.
    """
    collection = await get_live_video_collection(db, collection_id)
    require_modify_video_collection(user, collection)

    if body.coach_id is None:
        collection.assigned_coach_id = None
    else:
        coach = await db.get(User, body.coach_id)
        if coach is None:
            raise NotFoundError("Coach not found", field="coach_id")
        if not has_capability(coach, Capability.COACH_STUDENTS):
            raise BadRequestError("Selected user is not a coach", field="coach_id")
        owner = await db.get(User, collection.owner_id)
        if not are_in_same_club(coach, owner):
            raise BadRequestError("Coach must be from the same club as the student", field="coach_id")
        collection.assigned_coach_id = coach.id

    await commit_or_fail(db, "assign coach")
    logger.info("Video collection %s assigned to coach %s", collection.id, collection.assigned_coach_id)
    return VideoCollectionRead.model_validate(collection)
