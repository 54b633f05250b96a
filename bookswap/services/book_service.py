import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import BookNotFoundError, NotAuthorizedError, RequiredFieldError
from bookswap.models.book import Book
from bookswap.models.interest import InterestMark
from bookswap.models.match import Match
from bookswap.schemas.book import BookCreate, BookUpdate

logger = logging.getLogger(__name__)

# Columns that may be omitted from an update but never cleared
REQUIRED_FIELDS = ("title", "author", "genre", "condition", "location", "exchange_method")


def _plain_values(data: dict) -> dict:
    # Convert enums to values
    return {key: value.value if hasattr(value, "value") else value for key, value in data.items()}


async def create_book(
    db: AsyncSession,
    owner_id: UUID,
    data: BookCreate,
) -> Book:
    """List a new book for the owner."""
    book = Book(owner_id=owner_id, **_plain_values(data.model_dump()))
    db.add(book)
    await db.commit()
    await db.refresh(book)
    logger.info(f"Book {book.id} listed by user {owner_id}")
    return book


async def get_book_by_id(db: AsyncSession, book_id: UUID) -> Book | None:
    """Get book by ID."""
    result = await db.execute(select(Book).where(Book.id == book_id))
    return result.scalar_one_or_none()


async def require_book(db: AsyncSession, book_id: UUID) -> Book:
    book = await get_book_by_id(db, book_id)
    if book is None:
        raise BookNotFoundError()
    return book


async def get_books_by_ids(db: AsyncSession, book_ids: set[UUID]) -> dict[UUID, Book]:
    """Batch lookup keyed by book ID. Deleted books are absent from the result."""
    if not book_ids:
        return {}
    result = await db.execute(select(Book).where(Book.id.in_(book_ids)))
    return {book.id: book for book in result.scalars().all()}


async def get_user_book_ids(db: AsyncSession, user_id: UUID) -> list[UUID]:
    result = await db.execute(select(Book.id).where(Book.owner_id == user_id))
    return [row[0] for row in result.fetchall()]


async def list_books(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    exclude_owner_id: UUID | None = None,
) -> tuple[list[Book], int]:
    """All listings, newest first."""
    query = select(Book)
    if exclude_owner_id is not None:
        query = query.where(Book.owner_id != exclude_owner_id)

    # Get total count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Apply pagination and ordering
    offset = (page - 1) * per_page
    query = query.order_by(Book.created_at.desc()).offset(offset).limit(per_page)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_user_books(db: AsyncSession, user_id: UUID) -> list[Book]:
    result = await db.execute(
        select(Book).where(Book.owner_id == user_id).order_by(Book.created_at.desc())
    )
    return list(result.scalars().all())


async def update_book(
    db: AsyncSession,
    book_id: UUID,
    owner_id: UUID,
    data: BookUpdate,
) -> Book:
    """Change the provided fields of a book the caller owns."""
    book = await require_book(db, book_id)
    if book.owner_id != owner_id:
        raise NotAuthorizedError("You can only edit your own books")

    update_data = _plain_values(data.model_dump(exclude_unset=True))
    for field in REQUIRED_FIELDS:
        if field in update_data and update_data[field] is None:
            raise RequiredFieldError(f"{field} cannot be empty", field=field)

    for field, value in update_data.items():
        setattr(book, field, value)

    await db.commit()
    await db.refresh(book)
    return book


async def delete_book(
    db: AsyncSession,
    book_id: UUID,
    owner_id: UUID,
) -> None:
    """
    Delete a book the caller owns.

    Matches requesting the book and interest marks on it are deleted with it.
    Matches that offered the book in return keep existing without an offer.
    Dependent rows go through the session so every change reaches the feed;
    the foreign keys apply the same rules for deletes made outside the ORM.
    """
    book = await require_book(db, book_id)
    if book.owner_id != owner_id:
        raise NotAuthorizedError("You can only delete your own books")

    requests = await db.execute(select(Match).where(Match.book_requested_id == book.id))
    for match in requests.scalars().all():
        await db.delete(match)

    offers = await db.execute(select(Match).where(Match.book_offered_id == book.id))
    for match in offers.scalars().all():
        match.book_offered_id = None

    marks = await db.execute(select(InterestMark).where(InterestMark.book_id == book.id))
    for mark in marks.scalars().all():
        await db.delete(mark)

    # Dependent rows first, the book has no relationship to order them by
    await db.flush()
    await db.delete(book)
    await db.commit()
    logger.info(f"Book {book_id} deleted by user {owner_id}")
