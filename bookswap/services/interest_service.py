import logging
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import BookNotFoundError
from bookswap.core.store_errors import StoreErrorKind, classify_integrity_error
from bookswap.models.book import Book
from bookswap.models.interest import InterestMark
from bookswap.models.profile import Profile
from bookswap.schemas.interest import InterestedBook, InterestedBookOwner
from bookswap.services import book_service

logger = logging.getLogger(__name__)


async def get_interest_mark(
    db: AsyncSession,
    book_id: UUID,
    user_id: UUID,
) -> InterestMark | None:
    result = await db.execute(
        select(InterestMark).where(
            and_(
                InterestMark.book_id == book_id,
                InterestMark.user_id == user_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def toggle_book_interest(
    db: AsyncSession,
    book_id: UUID,
    user_id: UUID,
) -> bool:
    """
    Flip the user's interest in a book.
    Returns True when the book is now flagged, False when the flag was removed.
    """
    existing = await get_interest_mark(db, book_id, user_id)
    if existing is not None:
        await db.delete(existing)
        await db.commit()
        logger.info(f"User {user_id} removed interest in book {book_id}")
        return False

    if await book_service.get_book_by_id(db, book_id) is None:
        raise BookNotFoundError()

    db.add(InterestMark(user_id=user_id, book_id=book_id))
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        kind = classify_integrity_error(e)
        if kind == StoreErrorKind.UNIQUE_VIOLATION:
            # Flagged by a concurrent toggle in the meantime
            return True
        if kind == StoreErrorKind.FOREIGN_KEY_VIOLATION:
            raise BookNotFoundError() from e
        raise

    logger.info(f"User {user_id} flagged interest in book {book_id}")
    return True


async def check_book_interest(
    db: AsyncSession,
    book_id: UUID,
    user_id: UUID,
) -> bool:
    return await get_interest_mark(db, book_id, user_id) is not None


async def fetch_interested_books(
    db: AsyncSession,
    user_id: UUID,
) -> list[InterestedBook]:
    """Books the user flagged, newest flag first. Deleted books drop out of the join."""
    result = await db.execute(
        select(InterestMark, Book, Profile)
        .join(Book, Book.id == InterestMark.book_id)
        .outerjoin(Profile, Profile.user_id == Book.owner_id)
        .where(InterestMark.user_id == user_id)
        .order_by(InterestMark.created_at.desc())
    )

    books = []
    for mark, book, owner in result.all():
        books.append(
            InterestedBook(
                id=book.id,
                title=book.title,
                author=book.author,
                cover_url=book.cover_url,
                condition=book.condition,
                genre=book.genre,
                owner=InterestedBookOwner(
                    user_id=book.owner_id,
                    name=owner.name if owner and owner.name else "Unknown User",
                    profile_pic=owner.profile_pic if owner else None,
                ),
                interested_at=mark.created_at,
            )
        )
    return books
