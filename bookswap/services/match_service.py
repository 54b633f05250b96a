"""
Match lifecycle: request, respond, list.

A match is created `pending` by the requester and moved once to `accepted` or
`declined` by the owner of the requested book. Acceptance notifies the
requester; declining does not.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.change_feed import ChangeType, record_change, row_snapshot
from bookswap.core.exceptions import (
    AlreadyResolvedError,
    BookNotFoundError,
    DuplicateRequestError,
    MatchNotFoundError,
    NotAuthorizedError,
    ReferentialError,
    SelfMatchForbiddenError,
)
from bookswap.core.store_errors import (
    StoreErrorKind,
    classify_integrity_error,
    ensure_store_reachable,
)
from bookswap.models.book import Book
from bookswap.models.match import Match
from bookswap.schemas.match import (
    BookSummary,
    MatchDecision,
    MatchDetail,
    MatchResponse,
    UserMatchesResponse,
)
from bookswap.schemas.notification import MATCH_ACCEPTED
from bookswap.services import book_service, notification_service, profile_service

logger = logging.getLogger(__name__)


async def get_match_by_id(
    db: AsyncSession,
    match_id: UUID,
) -> Match | None:
    """Get match by ID."""
    result = await db.execute(select(Match).where(Match.id == match_id))
    return result.scalar_one_or_none()


async def get_existing_request(
    db: AsyncSession,
    requester_id: UUID,
    book_requested_id: UUID,
) -> Match | None:
    """Latest match by this requester for this book, whatever its status."""
    result = await db.execute(
        select(Match)
        .where(
            and_(
                Match.requester_id == requester_id,
                Match.book_requested_id == book_requested_id,
            )
        )
        .order_by(Match.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def request_match(
    db: AsyncSession,
    book_requested_id: UUID,
    book_offered_id: UUID | None,
    requester_id: UUID,
) -> Match:
    """
    Create a pending match for `book_requested_id`.

    The lookup for an existing request is only a fast path; two concurrent
    requests can both pass it. The partial unique index on open requests is
    what actually rejects the second insert, and that violation is reported
    as DuplicateRequestError as well.
    """
    await ensure_store_reachable(db)

    existing = await get_existing_request(db, requester_id, book_requested_id)
    if existing is not None:
        raise DuplicateRequestError()

    book = await book_service.get_book_by_id(db, book_requested_id)
    if book is None:
        raise BookNotFoundError("The requested book does not exist")

    if book.owner_id == requester_id:
        raise SelfMatchForbiddenError()

    if book_offered_id is not None:
        offered = await book_service.get_book_by_id(db, book_offered_id)
        if offered is None:
            raise ReferentialError("The offered book does not exist", field="book_offered_id")
        if offered.owner_id != requester_id:
            raise NotAuthorizedError(
                "You can only offer your own books", field="book_offered_id"
            )

    match = Match(
        requester_id=requester_id,
        book_requested_id=book_requested_id,
        book_offered_id=book_offered_id,
        status="pending",
    )
    db.add(match)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        kind = classify_integrity_error(e)
        if kind == StoreErrorKind.UNIQUE_VIOLATION:
            logger.info(
                f"Concurrent duplicate request by {requester_id} for book {book_requested_id}"
            )
            raise DuplicateRequestError() from e
        if kind == StoreErrorKind.FOREIGN_KEY_VIOLATION:
            raise ReferentialError() from e
        raise

    await db.refresh(match)
    logger.info(f"Match {match.id} requested by {requester_id} for book {book_requested_id}")
    return match


async def respond_to_match(
    db: AsyncSession,
    match_id: UUID,
    decision: MatchDecision | str,
    responder_id: UUID,
) -> Match:
    """
    Accept or decline a pending match as the owner of the requested book.

    The status is written with `UPDATE ... WHERE status = 'pending'`, so of two
    concurrent responses only one matches a row; the other gets
    `AlreadyResolvedError` with the status the winner wrote. This holds on
    SQLite too, which has no row locks. The owner is re-read from the books
    table.
    """
    decision = MatchDecision(decision)

    match = await _load_match(db, match_id)
    if match is None:
        raise MatchNotFoundError()

    book = await book_service.get_book_by_id(db, match.book_requested_id)
    if book is None or book.owner_id != responder_id:
        raise NotAuthorizedError("You are not authorized to respond to this match")

    if match.status != "pending":
        raise AlreadyResolvedError(
            f"Match is not pending (status: {match.status})",
            status=match.status,
        )

    previous = row_snapshot(match)
    result = await db.execute(
        update(Match)
        .where(Match.id == match_id, Match.status == "pending")
        .values(status=decision.value, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        current = await _load_match(db, match_id)
        status = current.status if current is not None else None
        logger.info(f"Match {match_id} resolved concurrently ({status}), {decision.value} rejected")
        raise AlreadyResolvedError(f"Match is not pending (status: {status})", status=status)

    await db.refresh(match)
    record_change(db, match, ChangeType.UPDATE, previous)
    await db.commit()
    logger.info(f"Match {match.id} {decision.value} by {responder_id}")

    if decision == MatchDecision.accepted:
        await _notify_requester_of_acceptance(db, match, book, responder_id)
        # A failed notification rolls the session back, which expires `match`
        await db.refresh(match)

    return match


async def _load_match(db: AsyncSession, match_id: UUID) -> Match | None:
    result = await db.execute(
        select(Match)
        .where(Match.id == match_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _notify_requester_of_acceptance(
    db: AsyncSession,
    match: Match,
    book: Book,
    responder_id: UUID,
) -> None:
    await notification_service.notify_best_effort(
        db,
        user_id=match.requester_id,
        actor_id=responder_id,
        type=MATCH_ACCEPTED,
        title="Match Request Accepted!",
        message=f'Your request for "{book.title}" has been accepted',
        data={
            "match_id": str(match.id),
            "book_id": str(book.id),
            "book_title": book.title,
        },
    )


async def fetch_user_matches(
    db: AsyncSession,
    user_id: UUID,
) -> UserMatchesResponse:
    """
    Matches the user requested and matches received on the user's books.

    Received matches are found by resolving the user's book IDs first and
    filtering on them, rather than filtering through a join on the owner.
    """
    requested_result = await db.execute(
        select(Match)
        .where(Match.requester_id == user_id)
        .order_by(Match.created_at.desc())
    )
    requested = list(requested_result.scalars().all())

    own_book_ids = await book_service.get_user_book_ids(db, user_id)
    received: list[Match] = []
    if own_book_ids:
        received_result = await db.execute(
            select(Match)
            .where(Match.book_requested_id.in_(own_book_ids))
            .order_by(Match.created_at.desc())
        )
        received = list(received_result.scalars().all())

    return UserMatchesResponse(
        requested=await enrich_matches(db, requested),
        received=await enrich_matches(db, received),
    )


async def enrich_matches(
    db: AsyncSession,
    matches: list[Match],
) -> list[MatchDetail]:
    """Attach book summaries and the requester's name with batched lookups."""
    book_ids = {match.book_requested_id for match in matches}
    book_ids |= {match.book_offered_id for match in matches if match.book_offered_id}
    books = await book_service.get_books_by_ids(db, book_ids)

    user_ids = {book.owner_id for book in books.values()}
    user_ids |= {match.requester_id for match in matches}
    profiles = await profile_service.get_profiles_by_user_ids(db, user_ids)

    def summarize(book_id: UUID) -> BookSummary:
        book = books.get(book_id)
        owner = profiles.get(book.owner_id) if book else None
        return BookSummary.from_book(book_id, book, owner.name if owner else None)

    details = []
    for match in matches:
        requester = profiles.get(match.requester_id)
        details.append(
            MatchDetail(
                **MatchResponse.model_validate(match).model_dump(),
                requester_name=(requester.name if requester and requester.name else "Unknown User"),
                requested_book=summarize(match.book_requested_id),
                offered_book=summarize(match.book_offered_id) if match.book_offered_id else None,
            )
        )
    return details


async def get_match_for_participant(
    db: AsyncSession,
    match_id: UUID,
    user_id: UUID,
) -> MatchDetail:
    """A single match, visible to its requester and to the requested book's owner."""
    match = await get_match_by_id(db, match_id)
    if match is None:
        raise MatchNotFoundError()

    if match.requester_id != user_id:
        book = await book_service.get_book_by_id(db, match.book_requested_id)
        if book is None or book.owner_id != user_id:
            raise NotAuthorizedError("Not your match")

    details = await enrich_matches(db, [match])
    return details[0]
