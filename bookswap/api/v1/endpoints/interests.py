from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.api.v1.endpoints.auth import get_current_user
from bookswap.database import get_db
from bookswap.schemas.interest import InterestedBook, InterestStatusResponse
from bookswap.schemas.user import UserResponse
from bookswap.services import interest_service

router = APIRouter(prefix="", tags=["interests"])


@router.get("/", response_model=list[InterestedBook])
async def get_interested_books(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[InterestedBook]:
    """Books the current user flagged, newest first."""
    return await interest_service.fetch_interested_books(db, current_user.id)


@router.get("/{book_id}", response_model=InterestStatusResponse)
async def get_interest_status(
    book_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InterestStatusResponse:
    interested = await interest_service.check_book_interest(db, book_id, current_user.id)
    return InterestStatusResponse(book_id=book_id, interested=interested)


@router.post("/{book_id}/toggle", response_model=InterestStatusResponse)
async def toggle_interest(
    book_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InterestStatusResponse:
    """
    Flag or unflag a book.

    Toggling twice restores the previous state.
    """
    interested = await interest_service.toggle_book_interest(db, book_id, current_user.id)
    return InterestStatusResponse(book_id=book_id, interested=interested)
