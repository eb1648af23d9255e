"""
ShuttleCoach Database Models
============================

Two groups of tables:
- Identity: clubs, users and their role-dependent sub-profiles
- Collections: student video collections (with coaching notes) and coach
  media collections (with share rows)

Collections and media are soft-deleted (is_deleted + deleted_at) and
excluded from every query and access check once deleted. Share rows are
weak references and are removed together with their collection.
"""

import enum
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from shuttlecoach.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSONList = JSON().with_variant(JSONB(), "postgresql")


def value_enum(enum_cls: type[enum.Enum]) -> Enum:
    """Enum column persisting member values (e.g. "student"), not names."""
    return Enum(enum_cls, name=enum_cls.__name__.lower(), values_callable=lambda cls: [m.value for m in cls])


# =============================================================================
# ENUMS
# =============================================================================

class UserType(str, enum.Enum):
    """Mutually exclusive user roles."""
    STUDENT = "student"
    COACH = "coach"
    FACILITY = "facility"
    ADMIN = "admin"


class MediaType(str, enum.Enum):
    """What a collection holds."""
    URL_VIDEO = "url_video"
    FILE_VIDEO = "file_video"


class SharingType(str, enum.Enum):
    """How a coach media collection is shared."""
    ALL_STUDENTS = "all_students"
    ALL_COACHES = "all_coaches"
    SPECIFIC_USERS = "specific_users"


class NoteType(str, enum.Enum):
    """Coaching note payload kinds."""
    TEXT = "text"
    YOUTUBE = "youtube"


# URL video collections hold at most this many live media items
URL_VIDEO_MEDIA_LIMIT = 3


# =============================================================================
# IDENTITY
# =============================================================================

class Club(Base):
    """Club, identified by its short name."""
    __tablename__ = "clubs"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    members: Mapped[list["User"]] = relationship(back_populates="club")


class User(Base):
    """
    Application user, mapped one-to-one to an identity provider subject.

    Created lazily on first authenticated access (see
    services.ensure_provisioned).
    """
    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_type: Mapped[UserType] = mapped_column(value_enum(UserType), nullable=False, default=UserType.STUDENT)
    club_id: Mapped[Optional[str]] = mapped_column(String(50), ForeignKey("clubs.id"))

    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    time_zone: Mapped[Optional[str]] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    club: Mapped[Optional["Club"]] = relationship(back_populates="members")
    student_profile: Mapped[Optional["StudentProfile"]] = relationship(back_populates="user", uselist=False)
    coach_profile: Mapped[Optional["CoachProfile"]] = relationship(back_populates="user", uselist=False)

    __table_args__ = (
        Index("ix_users_club_type", "club_id", "user_type"),
    )


class StudentProfile(Base):
    """Student-facing profile."""
    __tablename__ = "student_profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    display_username: Mapped[Optional[str]] = mapped_column(String(100), unique=True)

    skill_level: Mapped[Optional[str]] = mapped_column(String(50))
    goals: Mapped[Optional[str]] = mapped_column(Text)
    bio: Mapped[Optional[str]] = mapped_column(Text)

    profile_image: Mapped[Optional[bytes]] = mapped_column(LargeBinary)
    profile_image_type: Mapped[Optional[str]] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="student_profile")


class CoachProfile(Base):
    """Coach-facing profile, used for coach discovery."""
    __tablename__ = "coach_profiles"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    display_username: Mapped[Optional[str]] = mapped_column(String(100), unique=True)

    bio: Mapped[Optional[str]] = mapped_column(Text)
    experience: Mapped[Optional[str]] = mapped_column(Text)
    specialties: Mapped[list] = mapped_column(JSONList, default=list)
    teaching_styles: Mapped[list] = mapped_column(JSONList, default=list)
    rate: Mapped[int] = mapped_column(Integer, default=0)  # Hourly, whole currency units
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    header_image: Mapped[Optional[bytes]] = mapped_column(LargeBinary)
    header_image_type: Mapped[Optional[str]] = mapped_column(String(50))
    profile_image: Mapped[Optional[bytes]] = mapped_column(LargeBinary)
    profile_image_type: Mapped[Optional[str]] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="coach_profile")

    __table_args__ = (
        Index("ix_coach_profiles_rate", "rate"),
    )


# =============================================================================
# STUDENT VIDEO COLLECTIONS
# =============================================================================

class VideoCollection(Base):
    """
    Student-owned video collection.

    assigned_coach_id is a weak reference: clearing it or removing the coach
    never deletes the collection.
    """
    __tablename__ = "video_collections"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    uploaded_by_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("users.id"))
    assigned_coach_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    media_type: Mapped[MediaType] = mapped_column(value_enum(MediaType), nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    owner: Mapped["User"] = relationship(foreign_keys=[owner_id])
    assigned_coach: Mapped[Optional["User"]] = relationship(foreign_keys=[assigned_coach_id])
    media: Mapped[list["Media"]] = relationship(back_populates="collection", order_by="Media.created_at")

    __table_args__ = (
        Index("ix_video_collections_owner", "owner_id"),
        Index("ix_video_collections_assigned_coach", "assigned_coach_id"),
    )


class Media(Base):
    """Media item inside a student video collection."""
    __tablename__ = "media"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    collection_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("video_collections.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    video_url: Mapped[Optional[str]] = mapped_column(String(1000))
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1000))

    # FILE_VIDEO storage references
    file_key: Mapped[Optional[str]] = mapped_column(String(500))
    file_name: Mapped[Optional[str]] = mapped_column(String(255))
    file_size: Mapped[Optional[int]] = mapped_column(Integer)
    duration: Mapped[Optional[int]] = mapped_column(Integer)  # Seconds

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    collection: Mapped["VideoCollection"] = relationship(back_populates="media")
    coaching_notes: Mapped[list["MediaCoachNote"]] = relationship(
        back_populates="media", order_by="MediaCoachNote.created_at.desc()"
    )

    __table_args__ = (
        Index("ix_media_collection", "collection_id"),
    )


class MediaCoachNote(Base):
    """Coaching note authored by a coach (or admin) against one media item."""
    __tablename__ = "media_coach_notes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    media_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("media.id", ondelete="CASCADE"), nullable=False)
    coach_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    note_type: Mapped[NoteType] = mapped_column(value_enum(NoteType), nullable=False, default=NoteType.TEXT)
    note_content: Mapped[Optional[str]] = mapped_column(Text)
    video_url: Mapped[Optional[str]] = mapped_column(String(1000))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    media: Mapped["Media"] = relationship(back_populates="coaching_notes")
    coach: Mapped["User"] = relationship()

    __table_args__ = (
        Index("ix_media_coach_notes_media", "media_id"),
    )


# =============================================================================
# COACH MEDIA COLLECTIONS
# =============================================================================

class CoachMediaCollection(Base):
    """
    Coach-owned media collection shared with club members.

    sharing_types holds the selected modes; sharing_type is the single
    primary mode derived from them.
    """
    __tablename__ = "coach_media_collections"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    coach_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    media_type: Mapped[MediaType] = mapped_column(value_enum(MediaType), nullable=False)
    sharing_types: Mapped[list] = mapped_column(JSONList, default=list, nullable=False)
    sharing_type: Mapped[SharingType] = mapped_column(value_enum(SharingType), nullable=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    coach: Mapped["User"] = relationship()
    media: Mapped[list["CoachMedia"]] = relationship(back_populates="collection", order_by="CoachMedia.created_at")
    shares: Mapped[list["CoachCollectionShare"]] = relationship(back_populates="collection")

    __table_args__ = (
        Index("ix_coach_media_collections_coach", "coach_id"),
    )


class CoachMedia(Base):
    """Media item inside a coach media collection."""
    __tablename__ = "coach_media"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    collection_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("coach_media_collections.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    video_url: Mapped[Optional[str]] = mapped_column(String(1000))
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1000))

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    collection: Mapped["CoachMediaCollection"] = relationship(back_populates="media")

    __table_args__ = (
        Index("ix_coach_media_collection", "collection_id"),
    )


class CoachCollectionShare(Base):
    """Share row granting one user read access to a coach media collection."""
    __tablename__ = "coach_collection_shares"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    collection_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("coach_media_collections.id", ondelete="CASCADE"), nullable=False
    )
    shared_with_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    shared_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    collection: Mapped["CoachMediaCollection"] = relationship(back_populates="shares")
    shared_with: Mapped["User"] = relationship()

    __table_args__ = (
        UniqueConstraint("collection_id", "shared_with_id", name="uq_coach_collection_share"),
        Index("ix_coach_collection_shares_user", "shared_with_id"),
    )
