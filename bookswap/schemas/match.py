from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from bookswap.models.book import Book


class MatchStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"


class MatchDecision(str, Enum):
    accepted = "accepted"
    declined = "declined"


class MatchCreate(BaseModel):
    """Request a book, optionally offering one of your own"""

    book_requested_id: UUID
    book_offered_id: UUID | None = None


class MatchRespond(BaseModel):
    """Accept or decline a received request"""

    decision: MatchDecision


class MatchResponse(BaseModel):
    id: UUID
    requester_id: UUID
    book_requested_id: UUID
    book_offered_id: UUID | None
    status: MatchStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookSummary(BaseModel):
    """
    Descriptive fields of a book referenced by a match.
    `missing` is set when the book no longer exists; the other fields then
    hold placeholders.
    """

    id: UUID
    title: str
    author: str
    cover_url: str | None
    condition: str | None
    genre: str
    owner_id: UUID | None
    owner_name: str
    missing: bool = False

    @classmethod
    def from_book(
        cls,
        book_id: UUID,
        book: Book | None,
        owner_name: str | None = None,
    ) -> "BookSummary":
        if book is None:
            return cls(
                id=book_id,
                title="Unavailable book",
                author="Unknown",
                cover_url=None,
                condition=None,
                genre="Unknown",
                owner_id=None,
                owner_name="Unknown",
                missing=True,
            )
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            cover_url=book.cover_url,
            condition=book.condition,
            genre=book.genre,
            owner_id=book.owner_id,
            owner_name=owner_name or "Unknown",
        )


class MatchDetail(MatchResponse):
    """Match enriched with the books it references"""

    requester_name: str
    requested_book: BookSummary
    offered_book: BookSummary | None = None


class UserMatchesResponse(BaseModel):
    requested: list[MatchDetail]
    received: list[MatchDetail]
