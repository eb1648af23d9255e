"""
Coaches Router
==============

Coach discovery:
- Public search with filters, sorting and pagination
- Coaches of a club
- Single coach by display username
"""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shuttlecoach.config import settings
from shuttlecoach.dependencies import get_current_user, get_db
from shuttlecoach.errors import NotFoundError
from shuttlecoach.models import User
from shuttlecoach.schemas import CoachCard, PaginatedResponse
from shuttlecoach.services import (
    get_coach_by_username, list_club_coaches, search_coaches, validate_and_get_club,
)

router = APIRouter(prefix="/coaches", tags=["Coaches"])


@router.get("", response_model=PaginatedResponse[CoachCard])
async def list_coaches(
    search: Optional[str] = Query(None, max_length=100, description="Name, username or bio substring"),
    specialties: Optional[List[str]] = Query(None, description="Match any of these specialties"),
    teaching_styles: Optional[List[str]] = Query(None, description="Match any of these teaching styles"),
    min_rate: Optional[int] = Query(None, ge=0),
    max_rate: Optional[int] = Query(None, ge=0),
    is_verified: Optional[bool] = Query(None),
    sort_by: Literal["rate", "created_at", "name"] = Query("rate"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[CoachCard]:
    """Search coach profiles."""
    items, total = await search_coaches(
        db,
        search=search,
        specialties=specialties,
        teaching_styles=teaching_styles,
        min_rate=min_rate,
        max_rate=max_rate,
        is_verified=is_verified,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=limit,
    )
    return PaginatedResponse.create(items=items, total=total, page=page, page_size=limit)


@router.get("/club", response_model=List[CoachCard])
async def list_coaches_in_club(
    club_id: Optional[str] = Query(None, description="Defaults to the caller's club"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CoachCard]:
    club = await validate_and_get_club(db, club_id if club_id is not None else user.club_id)
    return await list_club_coaches(db, club.id)


@router.get("/{username}", response_model=CoachCard)
async def get_coach(username: str, db: AsyncSession = Depends(get_db)) -> CoachCard:
    coach = await get_coach_by_username(db, username)
    if coach is None:
        raise NotFoundError("Coach not found")
    return coach
