"""
Coach Collections Router
========================

Coach-owned media collections and their sharing:
- Create with an initial sharing selection
- Owner, facility, shared-with-me and admin listings
- Media items, soft delete
- Share / unshare / change sharing types
- Coach metrics and club user picker
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shuttlecoach.database import commit_or_fail
from shuttlecoach.dependencies import get_current_user, get_db
from shuttlecoach.errors import BadRequestError, ForbiddenError, NotFoundError
from shuttlecoach.models import (
    CoachCollectionShare, CoachMedia, CoachMediaCollection, MediaType, User, UserType,
)
from shuttlecoach.permissions import (
    Capability, can_modify_coach_collection, check_coach_collection_read,
    get_live_coach_collection, get_live_coach_media, is_admin, is_coach_or_admin,
    require_capability, require_modify_coach_collection,
)
from shuttlecoach.schemas import (
    CoachCollectionCreate, CoachCollectionDetail, CoachCollectionRead,
    CoachCollectionUpdate, CoachMediaCreate, CoachMediaRead, CoachMediaUpdate,
    CoachMetrics, ShareRequest, ShareResult, SharingUpdate, UserBrief,
)
from shuttlecoach.services import (
    apply_changes, check_media_cap, collect_changes, get_coach_metrics, validate_and_get_club,
)
from shuttlecoach import sharing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coach-collections", tags=["Coach Collections"])


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _share_result(collection: CoachMediaCollection, affected: int) -> ShareResult:
    return ShareResult(
        collection_id=collection.id,
        affected=affected,
        sharing_types=sharing.get_sharing_types(collection),
        sharing_type=collection.sharing_type,
    )


def _require_coach_or_admin(user: User) -> None:
    if not is_coach_or_admin(user):
        raise ForbiddenError("Only coaches can access this resource")


async def _load_coach_media_any_state(db: AsyncSession, media_id: UUID) -> CoachMedia:
    """Coach media item in a live collection, deleted or not."""
    stmt = (
        select(CoachMedia)
        .options(selectinload(CoachMedia.collection).selectinload(CoachMediaCollection.coach))
        .join(CoachMediaCollection, CoachMedia.collection_id == CoachMediaCollection.id)
        .where(CoachMedia.id == media_id, CoachMediaCollection.is_deleted == False)
    )
    media = (await db.execute(stmt)).scalar_one_or_none()
    if media is None:
        raise NotFoundError("Coach media not found")
    return media


# =============================================================================
# COLLECTIONS
# =============================================================================

@router.post("", response_model=CoachCollectionRead, status_code=status.HTTP_201_CREATED)
async def create_coach_collection(
    body: CoachCollectionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachCollectionRead:
    """
    Create a collection and apply its initial sharing.

    ``initial_user_ids`` are required when SPECIFIC_USERS is selected and
    must all be students or coaches of the caller's club.
    """
    require_capability(user, Capability.CREATE_COACH_COLLECTIONS, "Only coaches can create media collections")

    collection = CoachMediaCollection(
        id=uuid4(),
        coach_id=user.id,
        title=body.title.strip(),
        description=body.description,
        media_type=body.media_type,
    )
    collection.coach = user
    shared = await sharing.apply_initial_sharing(db, collection, body.sharing_types, body.initial_user_ids)
    await commit_or_fail(db, "create coach collection")
    logger.info("Coach collection %s created by %s, shared with %d user(s)", collection.id, user.id, shared)
    return CoachCollectionRead.model_validate(collection)


@router.get("", response_model=List[CoachCollectionRead])
async def list_coach_collections(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CoachCollectionRead]:
    """ADMIN sees every live collection, a COACH their own."""
    _require_coach_or_admin(user)
    stmt = (
        select(CoachMediaCollection)
        .where(CoachMediaCollection.is_deleted == False)
        .order_by(CoachMediaCollection.created_at.desc())
    )
    if not is_admin(user):
        stmt = stmt.where(CoachMediaCollection.coach_id == user.id)
    result = await db.execute(stmt)
    return [CoachCollectionRead.model_validate(c) for c in result.scalars().all()]


@router.get("/shared-with-me", response_model=List[CoachCollectionRead])
async def list_shared_with_me(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CoachCollectionRead]:
    if user.user_type not in (UserType.STUDENT, UserType.COACH):
        raise ForbiddenError("Only students and coaches receive shared collections")

    stmt = (
        select(CoachMediaCollection)
        .join(CoachCollectionShare, CoachCollectionShare.collection_id == CoachMediaCollection.id)
        .where(
            CoachCollectionShare.shared_with_id == user.id,
            CoachMediaCollection.is_deleted == False,
        )
        .order_by(CoachCollectionShare.shared_at.desc(), CoachMediaCollection.id)
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return [CoachCollectionRead.model_validate(c) for c in result.scalars().all()]


@router.get("/facility", response_model=List[CoachCollectionRead])
async def list_facility_collections(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CoachCollectionRead]:
    """Live collections of every coach in the facility's club."""
    require_capability(user, Capability.MANAGE_CLUB_COLLECTIONS, "Only facility accounts can access this resource")
    if user.club_id is None:
        return []

    stmt = (
        select(CoachMediaCollection)
        .join(User, CoachMediaCollection.coach_id == User.id)
        .where(User.club_id == user.club_id, CoachMediaCollection.is_deleted == False)
        .order_by(CoachMediaCollection.created_at.desc())
    )
    result = await db.execute(stmt)
    return [CoachCollectionRead.model_validate(c) for c in result.scalars().all()]


@router.get("/metrics", response_model=CoachMetrics)
async def coach_metrics(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachMetrics:
    _require_coach_or_admin(user)
    return await get_coach_metrics(db, user.id)


@router.get("/club-users", response_model=List[UserBrief])
async def list_club_users(
    club_id: Optional[str] = Query(None, description="Defaults to the caller's club"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[UserBrief]:
    """Students then coaches of a club, for picking share targets."""
    require_capability(user, Capability.CREATE_COACH_COLLECTIONS, "Only coaches can list club users")
    if club_id is not None and club_id != user.club_id and not is_admin(user):
        raise ForbiddenError("You can only list users of your own club", field="club_id")

    club = await validate_and_get_club(db, club_id if club_id is not None else user.club_id)
    users = await sharing.list_club_users(db, club.id)
    return [UserBrief.model_validate(u) for u in users]


# =============================================================================
# MEDIA
# =============================================================================

@router.get("/media/{media_id}", response_model=CoachMediaRead)
async def get_coach_media(
    media_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachMediaRead:
    media = await get_live_coach_media(db, media_id)
    await check_coach_collection_read(db, user, media.collection)
    return CoachMediaRead.model_validate(media)


@router.patch("/media/{media_id}", response_model=CoachMediaRead)
async def update_coach_media(
    media_id: UUID,
    body: CoachMediaUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachMediaRead:
    media = await get_live_coach_media(db, media_id)
    require_modify_coach_collection(user, media.collection)

    changes = collect_changes(body, required=("title",))
    if "video_url" in changes and not (changes["video_url"] or "").strip():
        raise BadRequestError("URL is required for URL video collections", field="video_url")
    apply_changes(media, changes)
    await commit_or_fail(db, "update coach media")
    return CoachMediaRead.model_validate(media)


@router.delete("/media/{media_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_coach_media(
    media_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    media = await _load_coach_media_any_state(db, media_id)
    require_modify_coach_collection(user, media.collection)
    if media.is_deleted:
        raise BadRequestError("Coach media is already deleted")

    media.is_deleted = True
    media.deleted_at = _now()
    await commit_or_fail(db, "delete coach media")
    logger.info("Coach media %s deleted by %s", media.id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# SINGLE COLLECTION
# =============================================================================

@router.get("/{collection_id}", response_model=CoachCollectionDetail)
async def get_coach_collection(
    collection_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachCollectionDetail:
    """Collection with its live media; managers also see who it is shared with."""
    collection = await get_live_coach_collection(db, collection_id)
    await check_coach_collection_read(db, user, collection)

    stmt = (
        select(CoachMedia)
        .where(CoachMedia.collection_id == collection.id, CoachMedia.is_deleted == False)
        .order_by(CoachMedia.created_at, CoachMedia.id)
    )
    media = (await db.execute(stmt)).scalars().all()

    shared_with_ids = None
    if can_modify_coach_collection(user, collection):
        shared_with_ids = await sharing.get_shared_user_ids(db, collection.id)

    return CoachCollectionDetail(
        **CoachCollectionRead.model_validate(collection).model_dump(),
        media=[CoachMediaRead.model_validate(m) for m in media],
        shared_with_ids=shared_with_ids,
    )


@router.patch("/{collection_id}", response_model=CoachCollectionRead)
async def update_coach_collection(
    collection_id: UUID,
    body: CoachCollectionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachCollectionRead:
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    apply_changes(collection, collect_changes(body, required=("title",)))
    await commit_or_fail(db, "update coach collection")
    return CoachCollectionRead.model_validate(collection)


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_coach_collection(
    collection_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Soft delete the collection and drop all of its shares in one transaction."""
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    collection.is_deleted = True
    collection.deleted_at = _now()
    removed = await sharing.remove_all_shares(db, collection.id)
    await commit_or_fail(db, "delete coach collection")
    logger.info("Coach collection %s deleted by %s, %d share(s) removed", collection.id, user.id, removed)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{collection_id}/media", response_model=CoachMediaRead, status_code=status.HTTP_201_CREATED)
async def add_coach_media(
    collection_id: UUID,
    body: CoachMediaCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachMediaRead:
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    if not body.video_url or not body.video_url.strip():
        if collection.media_type == MediaType.URL_VIDEO:
            raise BadRequestError("URL is required for URL video collections", field="video_url")
        raise BadRequestError("Video URL is required", field="video_url")
    await check_media_cap(db, collection, CoachMedia)

    media = CoachMedia(collection_id=collection.id, **body.model_dump())
    db.add(media)
    await commit_or_fail(db, "add coach media")
    logger.info("Coach media %s added to collection %s", media.id, collection.id)
    return CoachMediaRead.model_validate(media)


# =============================================================================
# SHARING
# =============================================================================

@router.post("/{collection_id}/shares", response_model=ShareResult)
async def share_with_students(
    collection_id: UUID,
    body: ShareRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ShareResult:
    """Share with specific students of the owning coach's club. Rejects the whole batch on any bad id."""
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    inserted = await sharing.share_with_students(db, collection, body.user_ids)
    await commit_or_fail(db, "share collection")
    return _share_result(collection, inserted)


@router.post("/{collection_id}/shares/all-students", response_model=ShareResult)
async def share_with_all_students(
    collection_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ShareResult:
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    inserted = await sharing.share_with_all_students(db, collection)
    await commit_or_fail(db, "share collection")
    return _share_result(collection, inserted)


@router.post("/{collection_id}/shares/all-coaches", response_model=ShareResult)
async def share_with_all_coaches(
    collection_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ShareResult:
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    inserted = await sharing.share_with_all_coaches(db, collection)
    await commit_or_fail(db, "share collection")
    return _share_result(collection, inserted)


@router.put("/{collection_id}/sharing", response_model=ShareResult)
async def update_sharing(
    collection_id: UUID,
    body: SharingUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ShareResult:
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    affected = await sharing.update_sharing_types(db, collection, body.sharing_types, body.user_ids)
    await commit_or_fail(db, "update sharing")
    return _share_result(collection, affected)


@router.delete("/{collection_id}/shares", response_model=ShareResult)
async def unshare(
    collection_id: UUID,
    body: ShareRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ShareResult:
    collection = await get_live_coach_collection(db, collection_id)
    require_modify_coach_collection(user, collection)

    removed = await sharing.unshare(db, collection, body.user_ids)
    await commit_or_fail(db, "unshare collection")
    return _share_result(collection, removed)
