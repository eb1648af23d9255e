"""
ShuttleCoach API Schemas
========================

Pydantic schemas for request/response validation, grouped by area:
- Users and profiles
- Clubs and coach discovery
- Student video collections, media and coaching notes
- Coach media collections and sharing
"""

from datetime import datetime
from typing import Optional, List, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from shuttlecoach.models import MediaType, NoteType, SharingType, UserType


# =============================================================================
# GENERIC TYPES
# =============================================================================

T = TypeVar('T')


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard paginated response wrapper."""
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def create(cls, items: List[T], total: int, page: int, page_size: int):
        total_pages = (total + page_size - 1) // page_size if page_size > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages
        )


# =============================================================================
# BASE SCHEMAS
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# HEALTH & STATUS
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: datetime
    database: str
    environment: str


class ReadyResponse(BaseModel):
    """Readiness probe response."""
    ready: bool
    checks: dict[str, bool]


# =============================================================================
# USER SCHEMAS
# =============================================================================

class StudentProfileRead(BaseModel):
    id: UUID
    display_username: Optional[str] = None
    skill_level: Optional[str] = None
    goals: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None  # data URL


class CoachProfileRead(BaseModel):
    id: UUID
    display_username: Optional[str] = None
    bio: Optional[str] = None
    experience: Optional[str] = None
    specialties: List[str] = []
    teaching_styles: List[str] = []
    rate: int = 0
    is_verified: bool = False
    profile_image: Optional[str] = None  # data URL
    header_image: Optional[str] = None   # data URL


class UserBrief(BaseSchema):
    """Minimal user info for lists and pickers."""
    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    user_type: UserType
    club_id: Optional[str] = None


class UserRead(UserBrief):
    """The caller's own user record with the profile(s) matching their role."""
    external_id: str
    time_zone: Optional[str] = None
    created_at: datetime
    student_profile: Optional[StudentProfileRead] = None
    coach_profile: Optional[CoachProfileRead] = None


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    time_zone: Optional[str] = Field(None, max_length=64)


class UserTypeUpdate(BaseModel):
    user_type: UserType


class ClubMembershipUpdate(BaseModel):
    club_id: str


class StudentProfileUpdate(BaseModel):
    skill_level: Optional[str] = Field(None, max_length=50)
    goals: Optional[str] = None
    bio: Optional[str] = None


class CoachProfileUpdate(BaseModel):
    bio: Optional[str] = None
    experience: Optional[str] = None
    specialties: Optional[List[str]] = None
    teaching_styles: Optional[List[str]] = None
    rate: Optional[int] = Field(None, ge=0)


class ImageUpload(BaseModel):
    """Base64 payload or a data:<mime>;base64,<...> URL."""
    image: str


class AdminUserUpdate(BaseModel):
    """Fields an admin may set on any user. An explicit null club_id removes membership."""
    user_type: Optional[UserType] = None
    club_id: Optional[str] = None


# =============================================================================
# CLUB & COACH DISCOVERY SCHEMAS
# =============================================================================

class ClubCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-zA-Z0-9-]+$")
    name: str = Field(..., min_length=1, max_length=100)


class ClubRead(BaseSchema):
    id: str
    name: str


class CoachCard(BaseModel):
    """Public coach listing entry."""
    id: UUID  # Coach profile id
    user_id: UUID
    display_username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    club_id: Optional[str] = None
    bio: Optional[str] = None
    experience: Optional[str] = None
    specialties: List[str] = []
    teaching_styles: List[str] = []
    rate: int = 0
    is_verified: bool = False
    profile_image: Optional[str] = None
    header_image: Optional[str] = None
    created_at: datetime


class ClubDetail(ClubRead):
    """Club landing data."""
    coaches: List[CoachCard] = []


# =============================================================================
# VIDEO COLLECTION SCHEMAS
# =============================================================================

class VideoCollectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    media_type: MediaType
    owner_id: Optional[UUID] = None  # Admin uploads on behalf of a student


class VideoCollectionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class MediaCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=1000)
    thumbnail_url: Optional[str] = Field(None, max_length=1000)
    file_key: Optional[str] = Field(None, max_length=500)
    file_name: Optional[str] = Field(None, max_length=255)
    file_size: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)


class MediaUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = Field(None, max_length=1000)


class CoachingNoteRead(BaseSchema):
    id: UUID
    media_id: UUID
    coach_id: UUID
    note_type: NoteType
    note_content: Optional[str] = None
    video_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MediaRead(BaseSchema):
    id: UUID
    collection_id: UUID
    title: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    file_key: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    duration: Optional[int] = None
    created_at: datetime


class MediaDetail(MediaRead):
    coaching_notes: List[CoachingNoteRead] = []


class VideoCollectionRead(BaseSchema):
    id: UUID
    owner_id: UUID
    uploaded_by_id: Optional[UUID] = None
    assigned_coach_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    media_type: MediaType
    created_at: datetime
    updated_at: datetime


class VideoCollectionDetail(VideoCollectionRead):
    """Collection with its live media and their coaching notes."""
    media: List[MediaDetail] = []


class CoachAssignment(BaseModel):
    coach_id: Optional[UUID] = None


class CoachingNoteCreate(BaseModel):
    media_id: UUID
    note_type: NoteType = NoteType.TEXT
    note_content: Optional[str] = None
    video_url: Optional[str] = None


class CoachingNoteUpdate(BaseModel):
    note_content: Optional[str] = None
    video_url: Optional[str] = None


# =============================================================================
# COACH MEDIA COLLECTION SCHEMAS
# =============================================================================

class CoachCollectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    media_type: MediaType = MediaType.URL_VIDEO
    sharing_types: List[SharingType] = Field(..., min_length=1)
    initial_user_ids: List[UUID] = []


class CoachCollectionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class CoachMediaCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=1000)
    thumbnail_url: Optional[str] = Field(None, max_length=1000)


class CoachMediaUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=1000)
    thumbnail_url: Optional[str] = Field(None, max_length=1000)


class CoachMediaRead(BaseSchema):
    id: UUID
    collection_id: UUID
    title: str
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: datetime


class CoachCollectionRead(BaseSchema):
    id: UUID
    coach_id: UUID
    title: str
    description: Optional[str] = None
    media_type: MediaType
    sharing_types: List[SharingType]
    sharing_type: SharingType
    created_at: datetime
    updated_at: datetime


class CoachCollectionDetail(CoachCollectionRead):
    media: List[CoachMediaRead] = []
    # Only populated for callers allowed to manage the collection
    shared_with_ids: Optional[List[UUID]] = None


class ShareRequest(BaseModel):
    user_ids: List[UUID]


class SharingUpdate(BaseModel):
    sharing_types: List[SharingType] = Field(..., min_length=1)
    user_ids: Optional[List[UUID]] = None


class ShareResult(BaseModel):
    collection_id: UUID
    affected: int  # Rows inserted or removed by this call
    sharing_types: List[SharingType]
    sharing_type: SharingType


class MostSharedCollection(BaseModel):
    id: UUID
    title: str
    share_count: int


class CoachMetrics(BaseModel):
    total_collections: int
    total_media: int
    students_reached: int
    most_shared_collection: Optional[MostSharedCollection] = None
