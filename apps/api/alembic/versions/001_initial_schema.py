"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

ShuttleCoach Database Schema
============================

Identity: clubs, users, student_profiles, coach_profiles
Student collections: video_collections, media, media_coach_notes
Coach collections: coach_media_collections, coach_media, coach_collection_shares
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create enums first
    user_type_enum = postgresql.ENUM('student', 'coach', 'facility', 'admin', name='usertype', create_type=False)
    user_type_enum.create(op.get_bind(), checkfirst=True)

    media_type_enum = postgresql.ENUM('url_video', 'file_video', name='mediatype', create_type=False)
    media_type_enum.create(op.get_bind(), checkfirst=True)

    sharing_type_enum = postgresql.ENUM(
        'all_students', 'all_coaches', 'specific_users',
        name='sharingtype', create_type=False
    )
    sharing_type_enum.create(op.get_bind(), checkfirst=True)

    note_type_enum = postgresql.ENUM('text', 'youtube', name='notetype', create_type=False)
    note_type_enum.create(op.get_bind(), checkfirst=True)

    # =========================================================================
    # IDENTITY
    # =========================================================================

    op.create_table(
        'clubs',
        sa.Column('id', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('external_id', sa.String(255), nullable=False),
        sa.Column('user_type', user_type_enum, nullable=False),
        sa.Column('club_id', sa.String(50), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('time_zone', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['club_id'], ['clubs.id']),
        sa.UniqueConstraint('external_id'),
    )
    op.create_index('ix_users_club_type', 'users', ['club_id', 'user_type'])

    op.create_table(
        'student_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_username', sa.String(100), nullable=True),
        sa.Column('skill_level', sa.String(50), nullable=True),
        sa.Column('goals', sa.Text(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_image', sa.LargeBinary(), nullable=True),
        sa.Column('profile_image_type', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('display_username'),
    )

    op.create_table(
        'coach_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('display_username', sa.String(100), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('experience', sa.Text(), nullable=True),
        sa.Column('specialties', postgresql.JSONB(), nullable=True),
        sa.Column('teaching_styles', postgresql.JSONB(), nullable=True),
        sa.Column('rate', sa.Integer(), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=True),
        sa.Column('header_image', sa.LargeBinary(), nullable=True),
        sa.Column('header_image_type', sa.String(50), nullable=True),
        sa.Column('profile_image', sa.LargeBinary(), nullable=True),
        sa.Column('profile_image_type', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('display_username'),
    )
    op.create_index('ix_coach_profiles_rate', 'coach_profiles', ['rate'])

    # =========================================================================
    # STUDENT VIDEO COLLECTIONS
    # =========================================================================

    op.create_table(
        'video_collections',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('uploaded_by_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('assigned_coach_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('media_type', media_type_enum, nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.ForeignKeyConstraint(['uploaded_by_id'], ['users.id']),
        sa.ForeignKeyConstraint(['assigned_coach_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_video_collections_owner', 'video_collections', ['owner_id'])
    op.create_index('ix_video_collections_assigned_coach', 'video_collections', ['assigned_coach_id'])

    op.create_table(
        'media',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(1000), nullable=True),
        sa.Column('thumbnail_url', sa.String(1000), nullable=True),
        sa.Column('file_key', sa.String(500), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['collection_id'], ['video_collections.id']),
    )
    op.create_index('ix_media_collection', 'media', ['collection_id'])

    op.create_table(
        'media_coach_notes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('media_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('coach_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('note_type', note_type_enum, nullable=False),
        sa.Column('note_content', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['media_id'], ['media.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['coach_id'], ['users.id']),
    )
    op.create_index('ix_media_coach_notes_media', 'media_coach_notes', ['media_id'])

    # =========================================================================
    # COACH MEDIA COLLECTIONS
    # =========================================================================

    op.create_table(
        'coach_media_collections',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('coach_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('media_type', media_type_enum, nullable=False),
        sa.Column('sharing_types', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('sharing_type', sharing_type_enum, nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['coach_id'], ['users.id']),
    )
    op.create_index('ix_coach_media_collections_coach', 'coach_media_collections', ['coach_id'])

    op.create_table(
        'coach_media',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('video_url', sa.String(1000), nullable=True),
        sa.Column('thumbnail_url', sa.String(1000), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['collection_id'], ['coach_media_collections.id']),
    )
    op.create_index('ix_coach_media_collection', 'coach_media', ['collection_id'])

    # One share row per (collection, user); the only guard against double-sharing
    op.create_table(
        'coach_collection_shares',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('collection_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('shared_with_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('shared_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['collection_id'], ['coach_media_collections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_with_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('collection_id', 'shared_with_id', name='uq_coach_collection_share'),
    )
    op.create_index('ix_coach_collection_shares_user', 'coach_collection_shares', ['shared_with_id'])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table('coach_collection_shares')
    op.drop_table('coach_media')
    op.drop_table('coach_media_collections')
    op.drop_table('media_coach_notes')
    op.drop_table('media')
    op.drop_table('video_collections')
    op.drop_table('coach_profiles')
    op.drop_table('student_profiles')
    op.drop_table('users')
    op.drop_table('clubs')

    # Drop enums
    op.execute("DROP TYPE IF EXISTS notetype")
    op.execute("DROP TYPE IF EXISTS sharingtype")
    op.execute("DROP TYPE IF EXISTS mediatype")
    op.execute("DROP TYPE IF EXISTS usertype")
