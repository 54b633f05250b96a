"""
Realtime consumers that turn change feed events into view snapshots.

Each consumer owns one channel shared by all of its subscriptions. A single
reducer task drains the channel, applies the batch to the consumer's own
state, reloads the view once, and hands the snapshot to a sink (normally
`WebSocket.send_json`). Nothing outside that task mutates consumer state.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bookswap.core.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeType,
    RowFilter,
    Subscription,
    bind_change_feed,
)
from bookswap.database import async_session_maker
from bookswap.schemas.message import MessageResponse
from bookswap.services import book_service, match_service, message_service

logger = logging.getLogger(__name__)

Sink = Callable[[dict[str, Any]], Awaitable[None]]

# Queued by close() to stop the reducer after its current batch
_STOP = None


class FeedConsumer:
    """Base class: subscription lifecycle plus the reducer loop."""

    kind = "feed"

    def __init__(
        self,
        feed: ChangeFeed,
        user_id: UUID,
        sink: Sink,
        session_maker: async_sessionmaker[AsyncSession] = async_session_maker,
    ):
        self.feed = feed
        self.user_id = user_id
        self.sink = sink
        self.session_maker = session_maker
        self.channel: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self.subscriptions: list[Subscription] = []
        self.reload_count = 0
        self.closed = False
        self._task: asyncio.Task | None = None

    def subscribe(self) -> list[Subscription]:
        raise NotImplementedError

    async def prepare(self, db: AsyncSession) -> None:
        """Load whatever state the predicates need before the first snapshot."""

    def apply(self, change: ChangeEvent) -> None:
        """Fold one event into consumer state before the next reload."""

    async def load(self, db: AsyncSession) -> dict[str, Any]:
        raise NotImplementedError

    async def start(self) -> None:
        # Subscribe first so that nothing committed during the initial load is lost
        self.subscriptions = self.subscribe()
        async with self.session_maker() as db:
            await self.prepare(db)
        await self.reload()
        self._task = asyncio.create_task(self._run())
        logger.info(f"{self.kind} feed started for user {self.user_id}")

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for subscription in self.subscriptions:
            subscription.close()
        self.channel.put_nowait(_STOP)
        if self._task is not None:
            await self._task
        logger.info(f"{self.kind} feed closed for user {self.user_id}")

    async def reload(self) -> None:
        async with self.session_maker() as db:
            bind_change_feed(db, self.feed)
            snapshot = await self.load(db)
        self.reload_count += 1

        # The connection may have gone away while the reload was running
        if self.closed:
            return
        await self.sink(snapshot)

    async def _run(self) -> None:
        while True:
            batch = [await self.channel.get()]
            while not self.channel.empty():
                batch.append(self.channel.get_nowait())

            for change in batch:
                if change is not _STOP:
                    self.apply(change)
            if _STOP in batch or self.closed:
                return

            try:
                await self.reload()
            except SQLAlchemyError:
                logger.exception(f"Reloading {self.kind} feed for user {self.user_id} failed")
            except Exception:
                logger.exception(f"Delivering {self.kind} feed to user {self.user_id} failed")
                return

    async def __aenter__(self) -> "FeedConsumer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class MatchFeedConsumer(FeedConsumer):
    """
    Keeps a user's requested and received matches current.

    Received matches are matched against the set of book IDs the user owns.
    Book events for the user's own books keep that set current.
    """

    kind = "matches"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.own_book_ids: set[str] = set()

    def subscribe(self) -> list[Subscription]:
        me = str(self.user_id)
        return [
            self.feed.subscribe(
                "matches", RowFilter("requester_id", "eq", me), self.channel
            ),
            self.feed.subscribe("matches", self._on_own_book, self.channel),
            self.feed.subscribe("books", RowFilter("owner_id", "eq", me), self.channel),
        ]

    def _on_own_book(self, row: Mapping[str, Any]) -> bool:
        book_id = row.get("book_requested_id")
        return book_id is not None and str(book_id) in self.own_book_ids

    async def prepare(self, db: AsyncSession) -> None:
        book_ids = await book_service.get_user_book_ids(db, self.user_id)
        self.own_book_ids = {str(book_id) for book_id in book_ids}

    def apply(self, change: ChangeEvent) -> None:
        if change.table != "books":
            return
        book_id = str(change.row.get("id"))
        if change.type == ChangeType.DELETE:
            self.own_book_ids.discard(book_id)
        else:
            self.own_book_ids.add(book_id)

    async def load(self, db: AsyncSession) -> dict[str, Any]:
        matches = await match_service.fetch_user_matches(db, self.user_id)
        return {"type": "matches", "data": matches.model_dump(mode="json")}


class MessageFeedConsumer(FeedConsumer):
    """Unread count, plus the open conversation when `partner_id` is given."""

    kind = "messages"

    def __init__(self, *args, partner_id: UUID | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.partner_id = partner_id

    def subscribe(self) -> list[Subscription]:
        me = str(self.user_id)
        return [
            self.feed.subscribe("messages", RowFilter("receiver_id", "eq", me), self.channel),
            self.feed.subscribe("messages", RowFilter("sender_id", "eq", me), self.channel),
        ]

    async def load(self, db: AsyncSession) -> dict[str, Any]:
        conversation = None
        if self.partner_id is not None:
            messages = await message_service.fetch_conversation(
                db, self.user_id, self.partner_id
            )
            conversation = [
                MessageResponse.model_validate(m).model_dump(mode="json") for m in messages
            ]

        unread_count = await message_service.get_unread_count(db, self.user_id)
        return {
            "type": "messages",
            "unread_count": unread_count,
            "conversation": conversation,
        }
