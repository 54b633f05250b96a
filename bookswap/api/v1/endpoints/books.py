from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.api.v1.endpoints.auth import get_current_user
from bookswap.config import settings
from bookswap.database import get_db
from bookswap.models.book import Book
from bookswap.schemas.book import (
    BookCreate,
    BookListResponse,
    BookOwner,
    BookResponse,
    BookUpdate,
)
from bookswap.schemas.user import UserResponse
from bookswap.services import book_service, profile_service

router = APIRouter(prefix="", tags=["books"])


async def _with_owners(db: AsyncSession, books: list[Book]) -> list[BookResponse]:
    """Attach each owner's public profile to the book responses."""
    profiles = await profile_service.get_profiles_by_user_ids(
        db, {book.owner_id for book in books}
    )

    responses = []
    for book in books:
        response = BookResponse.model_validate(book)
        profile = profiles.get(book.owner_id)
        if profile:
            response.owner = BookOwner(
                user_id=profile.user_id,
                name=profile.name,
                profile_pic=profile.profile_pic,
            )
        responses.append(response)
    return responses


@router.get("/", response_model=BookListResponse)
async def list_books(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    exclude_own: bool = Query(False),
) -> BookListResponse:
    """Browse listings, newest first."""
    books, total = await book_service.list_books(
        db,
        page=page,
        per_page=per_page,
        exclude_owner_id=current_user.id if exclude_own else None,
    )
    return BookListResponse(
        books=await _with_owners(db, books),
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    book_data: BookCreate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookResponse:
    book = await book_service.create_book(db, current_user.id, book_data)
    return BookResponse.model_validate(book)


# NOTE: /mine must be defined before /{book_id}
@router.get("/mine", response_model=list[BookResponse])
async def list_my_books(
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[BookResponse]:
    books = await book_service.list_user_books(db, current_user.id)
    return [BookResponse.model_validate(book) for book in books]


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookResponse:
    book = await book_service.require_book(db, book_id)
    responses = await _with_owners(db, [book])
    return responses[0]


@router.put("/{book_id}", response_model=BookResponse)
async def update_book(
    book_id: UUID,
    book_data: BookUpdate,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookResponse:
    book = await book_service.update_book(db, book_id, current_user.id, book_data)
    return BookResponse.model_validate(book)


@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(
    book_id: UUID,
    current_user: Annotated[UserResponse, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Response:
    """Delete a listing together with the requests and interest marks on it."""
    await book_service.delete_book(db, book_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
