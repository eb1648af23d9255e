"""
ShuttleCoach Business Logic Services
====================================

Contains core business logic including:
- Lazy user provisioning ("ensure provisioned") and sub-profile defaults
- Profile shaping for API responses
- Club validation
- Coaching note validation
- Coach discovery search
- Coach collection metrics
"""

import logging
import random
import re
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse
from uuid import UUID, uuid4

from sqlalchemy import select, func, or_, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shuttlecoach.database import commit_or_fail, execute_or_fail, insert_ignoring_conflicts
from shuttlecoach.errors import BadRequestError, InternalError
from shuttlecoach.images import binary_to_data_url
from shuttlecoach.models import (
    Club, CoachCollectionShare, CoachMedia, CoachMediaCollection, CoachProfile,
    MediaType, NoteType, StudentProfile, User, UserType, URL_VIDEO_MEDIA_LIMIT,
)
from shuttlecoach.schemas import (
    CoachCard, CoachMetrics, CoachProfileRead, MostSharedCollection,
    StudentProfileRead, UserRead,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PROVISIONING
# =============================================================================

STUDENT_PROFILE_DEFAULTS = {
    "skill_level": "Beginner",
    "goals": "Learn and improve badminton skills",
    "bio": "New badminton student eager to learn",
}

ADMIN_STUDENT_PROFILE_DEFAULTS = {
    "skill_level": "Intermediate",
    "goals": "Improve overall badminton skills and techniques",
    "bio": "Admin user with access to all platform features",
}

COACH_PROFILE_DEFAULTS = {
    "rate": 40,
    "bio": "Experienced badminton coach",
    "experience": "Several years of badminton coaching experience",
    "specialties": ["Fundamentals", "Technique"],
    "teaching_styles": ["Patient", "Structured"],
}

ADMIN_COACH_PROFILE_DEFAULTS = {
    "rate": 50,
    "bio": "Admin user with coaching capabilities",
    "experience": "Platform administrator with coaching access",
    "specialties": ["Administration", "Platform Management"],
    "teaching_styles": ["Flexible", "Adaptive"],
}

USERNAME_ATTEMPTS = 20


def username_base(first_name: Optional[str], last_name: Optional[str]) -> str:
    """Lower-cased first+last name with non-alphanumerics removed."""
    base = re.sub(r"[^a-z0-9]", "", f"{first_name or ''}{last_name or ''}".lower())
    return base or "user"


async def _username_taken(db: AsyncSession, profile_model, candidate: str) -> bool:
    stmt = select(profile_model.id).where(profile_model.display_username == candidate)
    return (await db.execute(stmt)).first() is not None


async def generate_display_username(
    db: AsyncSession,
    profile_model,
    first_name: Optional[str],
    last_name: Optional[str],
) -> str:
    """Derive a display username unique within ``profile_model``."""
    base = username_base(first_name, last_name)
    candidate = base
    attempts = 0
    while await _username_taken(db, profile_model, candidate):
        attempts += 1
        if attempts > USERNAME_ATTEMPTS:
            return f"{base}{uuid4().hex[:8]}"
        candidate = f"{base}{random.randint(0, 999):03d}"
    return candidate


async def get_user(db: AsyncSession, user_id: UUID) -> Optional[User]:
    """Load a user with both sub-profiles, refreshing any cached instance."""
    stmt = (
        select(User)
        .options(selectinload(User.student_profile), selectinload(User.coach_profile))
        .where(User.id == user_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
    stmt = (
        select(User)
        .options(selectinload(User.student_profile), selectinload(User.coach_profile))
        .where(User.external_id == external_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def ensure_provisioned(db: AsyncSession, external_id: str) -> User:
    """
    Return the user mapped to an identity provider subject, creating it on
    first access.

    Concurrent first requests race on the unique external_id: both issue an
    insert that ignores conflicts and both re-read the single winning row.
    New users start as a STUDENT without a club.
    """
    user = await get_user_by_external_id(db, external_id)
    if user is None:
        stmt = insert_ignoring_conflicts(
            db,
            User,
            [{"id": uuid4(), "external_id": external_id, "user_type": UserType.STUDENT}],
            index_elements=["external_id"],
        )
        await execute_or_fail(db, stmt, "create user")
        await commit_or_fail(db, "create user")
        user = await get_user_by_external_id(db, external_id)
        if user is None:
            raise InternalError("Failed to create user. Please try again.")
        logger.info("Provisioned user %s for subject %s", user.id, external_id)

    return await ensure_sub_profiles(db, user)


async def ensure_sub_profiles(db: AsyncSession, user: User) -> User:
    """
    Create the sub-profile(s) the user's role needs and does not have yet.

    STUDENT gets a student profile, COACH a coach profile, ADMIN both and
    FACILITY none. Existing profiles are never removed.
    """
    admin = user.user_type == UserType.ADMIN
    created = False

    if user.user_type in (UserType.STUDENT, UserType.ADMIN) and user.student_profile is None:
        username = await generate_display_username(db, StudentProfile, user.first_name, user.last_name)
        defaults = ADMIN_STUDENT_PROFILE_DEFAULTS if admin else STUDENT_PROFILE_DEFAULTS
        stmt = insert_ignoring_conflicts(
            db,
            StudentProfile,
            [{"id": uuid4(), "user_id": user.id, "display_username": username, **defaults}],
            index_elements=["user_id"],
        )
        await execute_or_fail(db, stmt, "create student profile")
        created = True

    if user.user_type in (UserType.COACH, UserType.ADMIN) and user.coach_profile is None:
        username = await generate_display_username(db, CoachProfile, user.first_name, user.last_name)
        defaults = ADMIN_COACH_PROFILE_DEFAULTS if admin else COACH_PROFILE_DEFAULTS
        stmt = insert_ignoring_conflicts(
            db,
            CoachProfile,
            [{
                "id": uuid4(),
                "user_id": user.id,
                "display_username": username,
                "is_verified": False,
                **defaults,
            }],
            index_elements=["user_id"],
        )
        await execute_or_fail(db, stmt, "create coach profile")
        created = True

    if not created:
        return user

    await commit_or_fail(db, "create user profile")
    logger.info("Provisioned %s profile(s) for user %s", user.user_type.value, user.id)
    return await get_user(db, user.id)


async def set_user_type(db: AsyncSession, user: User, user_type: UserType) -> User:
    """Change a user's role and provision the profile(s) the new role needs."""
    previous = user.user_type
    user.user_type = user_type
    await commit_or_fail(db, "update user type")
    logger.info("User %s changed type %s -> %s", user.id, previous.value, user_type.value)
    user = await get_user(db, user.id)
    return await ensure_sub_profiles(db, user)


# =============================================================================
# PROFILE SHAPING
# =============================================================================

def shape_student_profile(profile: StudentProfile) -> StudentProfileRead:
    return StudentProfileRead(
        id=profile.id,
        display_username=profile.display_username,
        skill_level=profile.skill_level,
        goals=profile.goals,
        bio=profile.bio,
        profile_image=binary_to_data_url(profile.profile_image, profile.profile_image_type),
    )


def shape_coach_profile(profile: CoachProfile) -> CoachProfileRead:
    return CoachProfileRead(
        id=profile.id,
        display_username=profile.display_username,
        bio=profile.bio,
        experience=profile.experience,
        specialties=profile.specialties or [],
        teaching_styles=profile.teaching_styles or [],
        rate=profile.rate or 0,
        is_verified=bool(profile.is_verified),
        profile_image=binary_to_data_url(profile.profile_image, profile.profile_image_type),
        header_image=binary_to_data_url(profile.header_image, profile.header_image_type),
    )


def shape_user(user: User) -> UserRead:
    """The user with only the sub-profile(s) matching the current role."""
    student = None
    coach = None
    if user.user_type in (UserType.STUDENT, UserType.ADMIN) and user.student_profile:
        student = shape_student_profile(user.student_profile)
    if user.user_type in (UserType.COACH, UserType.ADMIN) and user.coach_profile:
        coach = shape_coach_profile(user.coach_profile)

    return UserRead(
        id=user.id,
        external_id=user.external_id,
        user_type=user.user_type,
        club_id=user.club_id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        time_zone=user.time_zone,
        created_at=user.created_at,
        student_profile=student,
        coach_profile=coach,
    )


def shape_coach_card(profile: CoachProfile, user: User) -> CoachCard:
    return CoachCard(
        id=profile.id,
        user_id=user.id,
        display_username=profile.display_username,
        first_name=user.first_name,
        last_name=user.last_name,
        club_id=user.club_id,
        bio=profile.bio,
        experience=profile.experience,
        specialties=profile.specialties or [],
        teaching_styles=profile.teaching_styles or [],
        rate=profile.rate or 0,
        is_verified=bool(profile.is_verified),
        profile_image=binary_to_data_url(profile.profile_image, profile.profile_image_type),
        header_image=binary_to_data_url(profile.header_image, profile.header_image_type),
        created_at=profile.created_at,
    )


# =============================================================================
# CLUBS
# =============================================================================

CLUB_ID_PATTERN = re.compile(r"^[a-zA-Z0-9-]{1,50}$")


async def validate_and_get_club(db: AsyncSession, club_id: Optional[str]) -> Club:
    """Resolve a club id, raising BadRequestError when empty, malformed or unknown."""
    if club_id is None or not club_id.strip():
        raise BadRequestError("Club ID cannot be empty", field="club_id")
    club_id = club_id.strip()
    if not CLUB_ID_PATTERN.match(club_id):
        raise BadRequestError("Invalid club identifier", field="club_id")
    club = await db.get(Club, club_id)
    if club is None:
        raise BadRequestError("Invalid club identifier", field="club_id")
    return club


async def list_club_coaches(db: AsyncSession, club_id: str) -> List[CoachCard]:
    """Coach cards for the COACH and ADMIN members of a club."""
    stmt = (
        select(CoachProfile, User)
        .join(User, CoachProfile.user_id == User.id)
        .where(
            User.club_id == club_id,
            User.user_type.in_([UserType.COACH, UserType.ADMIN]),
        )
        .order_by(User.first_name, User.last_name)
    )
    result = await db.execute(stmt)
    return [shape_coach_card(row.CoachProfile, row.User) for row in result]


# =============================================================================
# COACH DISCOVERY
# =============================================================================

COACH_SORT_COLUMNS = {
    "rate": (CoachProfile.rate,),
    "created_at": (CoachProfile.created_at,),
    "name": (User.first_name, User.last_name),
}


def _overlaps(values: Optional[list], wanted: List[str]) -> bool:
    if not wanted:
        return True
    have = {v.lower() for v in (values or [])}
    return any(w.lower() in have for w in wanted)


async def search_coaches(
    db: AsyncSession,
    search: Optional[str] = None,
    specialties: Optional[List[str]] = None,
    teaching_styles: Optional[List[str]] = None,
    min_rate: Optional[int] = None,
    max_rate: Optional[int] = None,
    is_verified: Optional[bool] = None,
    sort_by: str = "rate",
    sort_order: str = "asc",
    page: int = 1,
    page_size: int = 10,
) -> Tuple[List[CoachCard], int]:
    """
    Search coach profiles.

    Scalar filters run in SQL. List filters (any overlap, case-insensitive)
    and pagination run on the filtered rows, since list columns are stored
    as JSON.
    """
    stmt = (
        select(CoachProfile, User)
        .join(User, CoachProfile.user_id == User.id)
        .where(User.user_type.in_([UserType.COACH, UserType.ADMIN]))
    )

    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(CoachProfile.display_username).like(pattern),
                func.lower(CoachProfile.bio).like(pattern),
            )
        )
    if min_rate is not None:
        stmt = stmt.where(CoachProfile.rate >= min_rate)
    if max_rate is not None:
        stmt = stmt.where(CoachProfile.rate <= max_rate)
    if is_verified is not None:
        stmt = stmt.where(CoachProfile.is_verified == is_verified)

    direction = desc if sort_order == "desc" else asc
    columns = COACH_SORT_COLUMNS.get(sort_by, COACH_SORT_COLUMNS["rate"])
    stmt = stmt.order_by(*[direction(c) for c in columns], CoachProfile.id)

    rows = (await db.execute(stmt)).all()
    matched = [
        row for row in rows
        if _overlaps(row.CoachProfile.specialties, specialties or [])
        and _overlaps(row.CoachProfile.teaching_styles, teaching_styles or [])
    ]

    total = len(matched)
    start = (page - 1) * page_size
    items = [shape_coach_card(row.CoachProfile, row.User) for row in matched[start:start + page_size]]
    return items, total


async def get_coach_by_username(db: AsyncSession, username: str) -> Optional[CoachCard]:
    """Look a coach up by display username, falling back to coach profile id."""
    condition = CoachProfile.display_username == username
    try:
        condition = or_(condition, CoachProfile.id == UUID(username))
    except ValueError:
        pass

    stmt = (
        select(CoachProfile, User)
        .join(User, CoachProfile.user_id == User.id)
        .where(condition, User.user_type.in_([UserType.COACH, UserType.ADMIN]))
    )
    row = (await db.execute(stmt)).first()
    if row is None:
        return None
    return shape_coach_card(row.CoachProfile, row.User)


# =============================================================================
# PARTIAL UPDATES
# =============================================================================

def collect_changes(body, required: Sequence[str] = ()) -> dict:
    """
    Fields explicitly set on a PATCH/PUT body.

    Strings in `required` are stripped; a null or blank value for them is
    rejected before anything is written.
    """
    changes = body.model_dump(exclude_unset=True)
    for field in required:
        if field not in changes:
            continue
        value = changes[field]
        if isinstance(value, str):
            value = value.strip()
            changes[field] = value
        if value is None or value == "":
            label = field.replace("_", " ").capitalize()
            raise BadRequestError(f"{label} cannot be empty", field=field)
    return changes


def apply_changes(target, changes: dict) -> None:
    for field, value in changes.items():
        setattr(target, field, value)


# =============================================================================
# MEDIA
# =============================================================================

async def count_live_media(db: AsyncSession, media_model, collection_id: UUID) -> int:
    stmt = select(func.count(media_model.id)).where(
        media_model.collection_id == collection_id,
        media_model.is_deleted == False,
    )
    return (await db.execute(stmt)).scalar_one()


async def check_media_cap(db: AsyncSession, collection, media_model) -> None:
    """URL video collections hold at most URL_VIDEO_MEDIA_LIMIT live items."""
    if collection.media_type != MediaType.URL_VIDEO:
        return
    if await count_live_media(db, media_model, collection.id) >= URL_VIDEO_MEDIA_LIMIT:
        raise BadRequestError(
            f"URL video collections are limited to {URL_VIDEO_MEDIA_LIMIT} videos",
            field="video_url",
        )


# =============================================================================
# COACHING NOTES
# =============================================================================

NOTE_MAX_LENGTH = 2000

YOUTUBE_ID_PATTERN = re.compile(
    r"^.*((youtu.be\/)|(v\/)|(\/u\/\w\/)|(embed\/)|(watch\?))\??v?=?([^#&?]*).*"
)
YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "youtu.be", "www.youtu.be"}


def extract_youtube_id(url: str) -> Optional[str]:
    match = YOUTUBE_ID_PATTERN.match(url)
    if match and len(match.group(7)) == 11:
        return match.group(7)
    return None


def _youtube_host(url: str) -> Optional[str]:
    candidate = url if "://" in url else f"https://{url}"
    return (urlparse(candidate).hostname or "").lower() or None


def validate_note_payload(
    note_type: NoteType,
    note_content: Optional[str],
    video_url: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """
    Validate a coaching note body and return the normalised (content, url).

    TEXT notes carry 1..2000 characters of trimmed content; YOUTUBE notes
    carry a youtube.com or youtu.be link with an 11-character video id.
    """
    if note_type == NoteType.TEXT:
        if video_url and video_url.strip():
            raise BadRequestError("Text notes cannot include a video URL", field="video_url")
        content = (note_content or "").strip()
        if not content:
            raise BadRequestError("Note content is required", field="note_content")
        if len(content) > NOTE_MAX_LENGTH:
            raise BadRequestError(
                f"Note content must be {NOTE_MAX_LENGTH} characters or less",
                field="note_content",
            )
        return content, None

    if note_content and note_content.strip():
        raise BadRequestError("YouTube notes cannot include text content", field="note_content")
    url = (video_url or "").strip()
    if not url:
        raise BadRequestError("YouTube URL is required", field="video_url")
    if _youtube_host(url) not in YOUTUBE_HOSTS:
        raise BadRequestError("Only youtube.com or youtu.be links are supported", field="video_url")
    if extract_youtube_id(url) is None:
        raise BadRequestError("Invalid YouTube URL", field="video_url")
    return None, url


# =============================================================================
# COACH METRICS
# =============================================================================

async def get_coach_metrics(db: AsyncSession, coach_id: UUID) -> CoachMetrics:
    """Totals over the coach's live collections."""
    live = (
        CoachMediaCollection.coach_id == coach_id,
        CoachMediaCollection.is_deleted == False,
    )

    total_collections = (await db.execute(
        select(func.count(CoachMediaCollection.id)).where(*live)
    )).scalar_one()

    total_media = (await db.execute(
        select(func.count(CoachMedia.id))
        .join(CoachMediaCollection, CoachMedia.collection_id == CoachMediaCollection.id)
        .where(*live, CoachMedia.is_deleted == False)
    )).scalar_one()

    students_reached = (await db.execute(
        select(func.count(func.distinct(CoachCollectionShare.shared_with_id)))
        .join(CoachMediaCollection, CoachCollectionShare.collection_id == CoachMediaCollection.id)
        .join(User, CoachCollectionShare.shared_with_id == User.id)
        .where(*live, User.user_type == UserType.STUDENT)
    )).scalar_one()

    share_count = func.count(CoachCollectionShare.id).label("share_count")
    top = (await db.execute(
        select(CoachMediaCollection.id, CoachMediaCollection.title, share_count)
        .join(CoachCollectionShare, CoachCollectionShare.collection_id == CoachMediaCollection.id)
        .where(*live)
        .group_by(CoachMediaCollection.id, CoachMediaCollection.title)
        .order_by(desc("share_count"), CoachMediaCollection.title)
        .limit(1)
    )).first()

    most_shared = None
    if top is not None:
        most_shared = MostSharedCollection(id=top.id, title=top.title, share_count=top.share_count)

    return CoachMetrics(
        total_collections=total_collections,
        total_media=total_media,
        students_reached=students_reached,
        most_shared_collection=most_shared,
    )
