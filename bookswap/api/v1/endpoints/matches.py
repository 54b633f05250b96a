from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.api.v1.endpoints.auth import get_current_user
from bookswap.database import get_db
from bookswap.schemas.match import (
    MatchCreate,
    MatchDetail,
    MatchRespond,
    MatchResponse,
    UserMatchesResponse,
)
from bookswap.schemas.user import UserResponse
from bookswap.services import match_service

router = APIRouter(prefix="", tags=["matches"])


@router.get("/", response_model=UserMatchesResponse)
async def get_my_matches(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserMatchesResponse:
    """Matches the current user requested and matches received on their books."""
    return await match_service.fetch_user_matches(db, current_user.id)


@router.post("/", response_model=MatchResponse, status_code=status.HTTP_201_CREATED)
async def request_match(
    data: MatchCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    """
    Request another user's book, optionally offering one of your own.

    Validations:
    - Cannot request your own book
    - Cannot request the same book twice
    - The offered book must be yours
    """
    match = await match_service.request_match(
        db,
        book_requested_id=data.book_requested_id,
        book_offered_id=data.book_offered_id,
        requester_id=current_user.id,
    )
    return MatchResponse.model_validate(match)


@router.get("/{match_id}", response_model=MatchDetail)
async def get_match(
    match_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchDetail:
    return await match_service.get_match_for_participant(db, match_id, current_user.id)


@router.post("/{match_id}/respond", response_model=MatchResponse)
async def respond_to_match(
    match_id: UUID,
    data: MatchRespond,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MatchResponse:
    """Accept or decline a pending request on one of your books."""
    match = await match_service.respond_to_match(
        db,
        match_id=match_id,
        decision=data.decision,
        responder_id=current_user.id,
    )
    return MatchResponse.model_validate(match)
