"""
Coaching Notes Router
=====================

Notes coaches leave on student media: text feedback or a YouTube link.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.database import commit_or_fail, execute_or_fail
from shuttlecoach.dependencies import get_current_user, get_db
from shuttlecoach.models import MediaCoachNote, User
from shuttlecoach.permissions import (
    get_live_media, get_note, require_access_video_collection,
    require_author_notes, require_modify_note,
)
from shuttlecoach.schemas import CoachingNoteCreate, CoachingNoteRead, CoachingNoteUpdate
from shuttlecoach.services import validate_note_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coaching-notes", tags=["Coaching Notes"])


@router.post("", response_model=CoachingNoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    body: CoachingNoteCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachingNoteRead:
    """Add a note to a live media item the caller coaches."""
    media = await get_live_media(db, body.media_id)
    require_author_notes(user, media.collection)
    content, video_url = validate_note_payload(body.note_type, body.note_content, body.video_url)

    note = MediaCoachNote(
        media_id=media.id,
        coach_id=user.id,
        note_type=body.note_type,
        note_content=content,
        video_url=video_url,
    )
    db.add(note)
    await commit_or_fail(db, "create coaching note")
    logger.info("Coaching note %s added to media %s by %s", note.id, media.id, user.id)
    return CoachingNoteRead.model_validate(note)


@router.get("/media/{media_id}", response_model=List[CoachingNoteRead])
async def list_notes_for_media(
    media_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CoachingNoteRead]:
    media = await get_live_media(db, media_id)
    require_access_video_collection(user, media.collection)

    stmt = (
        select(MediaCoachNote)
        .where(MediaCoachNote.media_id == media.id)
        .order_by(MediaCoachNote.created_at.desc(), MediaCoachNote.id)
    )
    result = await db.execute(stmt)
    return [CoachingNoteRead.model_validate(n) for n in result.scalars().all()]


@router.patch("/{note_id}", response_model=CoachingNoteRead)
async def update_note(
    note_id: UUID,
    body: CoachingNoteUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoachingNoteRead:
    """Edit a note. Only its author or an admin may do so; the note type is fixed."""
    note = await get_note(db, note_id)
    require_modify_note(user, note)

    changes = body.model_dump(exclude_unset=True)
    content, video_url = validate_note_payload(
        note.note_type,
        changes.get("note_content", note.note_content),
        changes.get("video_url", note.video_url),
    )
    note.note_content = content
    note.video_url = video_url
    await commit_or_fail(db, "update coaching note")
    return CoachingNoteRead.model_validate(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_note(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    note = await get_note(db, note_id)
    require_modify_note(user, note)

    await execute_or_fail(db, delete(MediaCoachNote).where(MediaCoachNote.id == note.id), "delete coaching note")
    await commit_or_fail(db, "delete coaching note")
    logger.info("Coaching note %s deleted by %s", note_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
