"""
Clubs Router
============

Club listing, landing data and creation.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.database import commit_or_fail
from shuttlecoach.dependencies import get_db, require_admin
from shuttlecoach.errors import BadRequestError, NotFoundError
from shuttlecoach.models import Club, User
from shuttlecoach.schemas import ClubCreate, ClubDetail, ClubRead
from shuttlecoach.services import list_club_coaches

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clubs", tags=["Clubs"])


@router.get("", response_model=List[ClubRead])
async def list_clubs(db: AsyncSession = Depends(get_db)) -> List[ClubRead]:
    result = await db.execute(select(Club).order_by(Club.name))
    return [ClubRead.model_validate(c) for c in result.scalars().all()]


@router.get("/{club_id}", response_model=ClubDetail)
async def get_club(club_id: str, db: AsyncSession = Depends(get_db)) -> ClubDetail:
    """Club landing data: the club and its coaches."""
    club = await db.get(Club, club_id)
    if club is None:
        raise NotFoundError(f"Club {club_id} not found")

    return ClubDetail(
        id=club.id,
        name=club.name,
        coaches=await list_club_coaches(db, club.id),
    )


@router.post("", response_model=ClubRead, status_code=status.HTTP_201_CREATED)
async def create_club(
    body: ClubCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ClubRead:
    if await db.get(Club, body.id) is not None:
        raise BadRequestError(f"Club {body.id} already exists", field="id")

    club = Club(id=body.id, name=body.name.strip())
    db.add(club)
    await commit_or_fail(db, "create club")
    logger.info("Club %s created by %s", club.id, admin.id)
    return ClubRead.model_validate(club)
