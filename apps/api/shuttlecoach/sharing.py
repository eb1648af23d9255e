"""
Coach Collection Sharing
========================

Share rows grant read access to a coach media collection. Rules:
- Every target must belong to the owning coach's club; a batch with any
  invalid target is rejected whole before anything is written.
- ALL_STUDENTS / ALL_COACHES snapshot the current club roster and union it
  into the existing shares. Later club members are not added.
- Selecting SPECIFIC_USERS replaces the full share set.
- (collection, user) pairs are unique; bulk paths skip duplicates.

None of these functions commit. Callers commit the unit of work.
"""

import logging
from typing import Iterable, List, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.database import execute_or_fail, insert_ignoring_conflicts
from shuttlecoach.errors import BadRequestError
from shuttlecoach.models import (
    CoachCollectionShare, CoachMediaCollection, SharingType, User, UserType,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SHARING TYPES
# =============================================================================

def normalize_sharing_types(types: Iterable[SharingType]) -> List[SharingType]:
    """Selected types in first-seen order, duplicates removed."""
    seen: List[SharingType] = []
    for t in types:
        t = SharingType(t)
        if t not in seen:
            seen.append(t)
    return seen


def primary_sharing_type(types: Sequence[SharingType]) -> SharingType:
    """
    Single stored mode for a selection: a lone type is itself, any selection
    with SPECIFIC_USERS is SPECIFIC_USERS, otherwise the first selected.
    """
    types = normalize_sharing_types(types)
    if not types:
        raise BadRequestError("At least one sharing type is required", field="sharing_types")
    if len(types) == 1:
        return types[0]
    if SharingType.SPECIFIC_USERS in types:
        return SharingType.SPECIFIC_USERS
    return types[0]


def set_sharing_types(collection: CoachMediaCollection, types: Sequence[SharingType]) -> None:
    types = normalize_sharing_types(types)
    collection.sharing_types = [t.value for t in types]
    collection.sharing_type = primary_sharing_type(types)


def get_sharing_types(collection: CoachMediaCollection) -> List[SharingType]:
    return normalize_sharing_types(collection.sharing_types or [collection.sharing_type])


# =============================================================================
# ROSTERS & TARGET VALIDATION
# =============================================================================

async def resolve_club_roster(
    db: AsyncSession,
    club_id: Optional[str],
    user_type: UserType,
    exclude_user_id: Optional[UUID] = None,
) -> List[UUID]:
    """Ids of the users of one role in a club, as of now."""
    if club_id is None:
        return []
    stmt = select(User.id).where(User.club_id == club_id, User.user_type == user_type)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    return list((await db.execute(stmt)).scalars().all())


async def list_club_users(db: AsyncSession, club_id: str) -> List[User]:
    """STUDENT and COACH members of a club, students first."""
    stmt = (
        select(User)
        .where(
            User.club_id == club_id,
            User.user_type.in_([UserType.STUDENT, UserType.COACH]),
        )
        .order_by(User.first_name, User.last_name, User.id)
    )
    users = list((await db.execute(stmt)).scalars().all())
    return sorted(users, key=lambda u: 0 if u.user_type == UserType.STUDENT else 1)


async def validate_share_targets(
    db: AsyncSession,
    club_id: Optional[str],
    user_ids: Sequence[UUID],
    allowed_types: Sequence[UserType],
    message: str = "Some users not found or not in the same club",
) -> List[UUID]:
    """
    Check a batch of share targets, all or nothing.

    Every id must exist, have one of ``allowed_types`` and belong to
    ``club_id``. Returns the distinct ids in request order.
    """
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        raise BadRequestError("At least one user must be selected", field="user_ids")
    if club_id is None:
        raise BadRequestError(message, field="user_ids")

    stmt = select(func.count(User.id)).where(
        User.id.in_(ids),
        User.club_id == club_id,
        User.user_type.in_(list(allowed_types)),
    )
    matched = (await db.execute(stmt)).scalar_one()
    if matched != len(ids):
        raise BadRequestError(message, field="user_ids")
    return ids


# =============================================================================
# SHARE ROWS
# =============================================================================

async def insert_shares(
    db: AsyncSession,
    collection_id: UUID,
    user_ids: Sequence[UUID],
) -> int:
    """
    Bulk insert share rows; returns the number of rows written.

    Pairs that already exist are left alone, so every share path is
    idempotent.
    """
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return 0
    rows = [{"id": uuid4(), "collection_id": collection_id, "shared_with_id": uid} for uid in ids]

    stmt = insert_ignoring_conflicts(
        db, CoachCollectionShare, rows, index_elements=["collection_id", "shared_with_id"]
    )
    result = await execute_or_fail(db, stmt, "share collection")
    return max(result.rowcount or 0, 0)


async def remove_all_shares(db: AsyncSession, collection_id: UUID) -> int:
    result = await execute_or_fail(
        db,
        delete(CoachCollectionShare).where(CoachCollectionShare.collection_id == collection_id),
        "remove collection shares",
    )
    return result.rowcount or 0


async def get_shared_user_ids(db: AsyncSession, collection_id: UUID) -> List[UUID]:
    stmt = (
        select(CoachCollectionShare.shared_with_id)
        .where(CoachCollectionShare.collection_id == collection_id)
        .order_by(CoachCollectionShare.shared_at)
    )
    return list((await db.execute(stmt)).scalars().all())


# =============================================================================
# SHARING OPERATIONS
# =============================================================================

async def _roster_for(db: AsyncSession, collection: CoachMediaCollection, sharing_type: SharingType) -> List[UUID]:
    club_id = collection.coach.club_id
    if sharing_type == SharingType.ALL_STUDENTS:
        return await resolve_club_roster(db, club_id, UserType.STUDENT)
    if sharing_type == SharingType.ALL_COACHES:
        return await resolve_club_roster(db, club_id, UserType.COACH, exclude_user_id=collection.coach_id)
    return []


async def share_with_students(
    db: AsyncSession,
    collection: CoachMediaCollection,
    student_ids: Sequence[UUID],
) -> int:
    """Share with explicit students of the owning coach's club."""
    ids = await validate_share_targets(
        db,
        collection.coach.club_id,
        student_ids,
        [UserType.STUDENT],
        message="Some students not found or not in the same club",
    )
    inserted = await insert_shares(db, collection.id, ids)
    logger.info("Collection %s shared with %d student(s), %d new", collection.id, len(ids), inserted)
    return inserted


async def _share_with_roster(
    db: AsyncSession, collection: CoachMediaCollection, sharing_type: SharingType
) -> int:
    types = get_sharing_types(collection)
    if sharing_type not in types:
        set_sharing_types(collection, types + [sharing_type])
    roster = await _roster_for(db, collection, sharing_type)
    inserted = await insert_shares(db, collection.id, roster)
    logger.info(
        "Collection %s shared with %s: %d member(s), %d new",
        collection.id, sharing_type.value, len(roster), inserted,
    )
    return inserted


async def share_with_all_students(db: AsyncSession, collection: CoachMediaCollection) -> int:
    return await _share_with_roster(db, collection, SharingType.ALL_STUDENTS)


async def share_with_all_coaches(db: AsyncSession, collection: CoachMediaCollection) -> int:
    return await _share_with_roster(db, collection, SharingType.ALL_COACHES)


async def resolve_share_targets(
    db: AsyncSession,
    collection: CoachMediaCollection,
    sharing_types: Sequence[SharingType],
    user_ids: Optional[Sequence[UUID]] = None,
) -> List[UUID]:
    """
    Validate a sharing selection and compute its share targets without
    writing anything: the explicit ids for SPECIFIC_USERS plus the current
    roster of every ALL_* type selected.
    """
    types = normalize_sharing_types(sharing_types)
    if not types:
        raise BadRequestError("At least one sharing type is required", field="sharing_types")

    targets: List[UUID] = []
    if SharingType.SPECIFIC_USERS in types:
        if not user_ids:
            raise BadRequestError(
                "User IDs are required when SPECIFIC_USERS sharing type is selected",
                field="user_ids",
            )
        targets.extend(await validate_share_targets(
            db,
            collection.coach.club_id,
            user_ids,
            [UserType.STUDENT, UserType.COACH],
        ))

    for t in types:
        targets.extend(await _roster_for(db, collection, t))
    return list(dict.fromkeys(targets))


async def update_sharing_types(
    db: AsyncSession,
    collection: CoachMediaCollection,
    sharing_types: Sequence[SharingType],
    user_ids: Optional[Sequence[UUID]] = None,
) -> int:
    """
    Replace the collection's selected sharing types.

    With SPECIFIC_USERS selected the share set is rebuilt from the explicit
    ids plus any ALL_* rosters selected alongside. Otherwise the rosters
    are unioned into the existing shares.
    """
    types = normalize_sharing_types(sharing_types)
    targets = await resolve_share_targets(db, collection, types, user_ids)
    set_sharing_types(collection, types)
    if SharingType.SPECIFIC_USERS in types:
        await remove_all_shares(db, collection.id)
    affected = await insert_shares(db, collection.id, targets)
    logger.info(
        "Collection %s sharing set to %s (%d row(s) written)",
        collection.id, ",".join(t.value for t in types), affected,
    )
    return affected


async def apply_initial_sharing(
    db: AsyncSession,
    collection: CoachMediaCollection,
    sharing_types: Sequence[SharingType],
    initial_user_ids: Optional[Sequence[UUID]] = None,
) -> int:
    """
    Persist a new collection together with its initial shares.

    The selection is validated before the collection is added to the
    session, so a rejected selection leaves nothing behind.
    """
    types = normalize_sharing_types(sharing_types)
    targets = await resolve_share_targets(db, collection, types, initial_user_ids)

    set_sharing_types(collection, types)
    db.add(collection)
    await db.flush()
    return await insert_shares(db, collection.id, targets)


async def unshare(db: AsyncSession, collection: CoachMediaCollection, user_ids: Sequence[UUID]) -> int:
    """Remove share rows for the given users. The selected sharing types are untouched."""
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        raise BadRequestError("At least one user must be selected", field="user_ids")
    result = await execute_or_fail(
        db,
        delete(CoachCollectionShare).where(
            CoachCollectionShare.collection_id == collection.id,
            CoachCollectionShare.shared_with_id.in_(ids),
        ),
        "unshare collection",
    )
    removed = result.rowcount or 0
    logger.info("Collection %s unshared from %d user(s)", collection.id, removed)
    return removed
