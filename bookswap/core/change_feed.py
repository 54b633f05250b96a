"""
In-process realtime change feed.

Row level INSERT/UPDATE/DELETE events are captured from the ORM unit of work
and published once the surrounding transaction commits. Subscribers register
a table plus a row predicate and receive matching events on an asyncio.Queue.
Several subscriptions may share one queue so that a single consumer task can
process everything a view cares about in order.
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from bookswap.config import settings

logger = logging.getLogger(__name__)

RowPredicate = Callable[[Mapping[str, Any]], bool]

TRACKED_TABLES = frozenset(
    {
        "profiles",
        "books",
        "matches",
        "messages",
        "interested_books",
        "notifications",
    }
)

_FEED_KEY = "change_feed"
_PENDING_KEY = "pending_change_events"

_EMPTY_ROW: Mapping[str, Any] = MappingProxyType({})


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed row change. `record` is empty for deletes."""

    table: str
    type: ChangeType
    record: Mapping[str, Any] = field(default_factory=lambda: _EMPTY_ROW)
    old_record: Mapping[str, Any] = field(default_factory=lambda: _EMPTY_ROW)
    committed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def row(self) -> Mapping[str, Any]:
        return self.old_record if self.type == ChangeType.DELETE else self.record

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type.value,
            "record": dict(self.record),
            "old_record": dict(self.old_record),
            "committed_at": self.committed_at,
        }


def all_rows(row: Mapping[str, Any]) -> bool:
    return True


def _comparable(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class RowFilter:
    """
    Column predicate in the `column=op.value` notation.

    Supported operators: `eq` (single value) and `in` (tuple of values),
    e.g. `requester_id=eq.<uuid>` or `book_requested_id=in.(<a>,<b>)`.
    Values are compared by their string form so UUIDs and plain strings match.
    """

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in ("eq", "in"):
            raise ValueError(f"Unsupported filter operator: {self.op!r}")

    def __call__(self, row: Mapping[str, Any]) -> bool:
        if self.column not in row:
            return False
        actual = _comparable(row[self.column])
        if self.op == "eq":
            return actual == _comparable(self.value)
        return actual in {_comparable(v) for v in self.value}

    @classmethod
    def parse(cls, expression: str) -> "RowFilter":
        column, sep, rest = expression.partition("=")
        op, dot, raw = rest.partition(".")
        if not sep or not dot or not column:
            raise ValueError(f"Invalid filter expression: {expression!r}")

        if op == "in":
            if not (raw.startswith("(") and raw.endswith(")")):
                raise ValueError(f"Invalid filter expression: {expression!r}")
            values = tuple(v.strip() for v in raw[1:-1].split(",") if v.strip())
            return cls(column.strip(), "in", values)

        return cls(column.strip(), op, raw)


class Subscription:
    """Registration of a predicate on one table; delivers onto `channel`."""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        predicate: RowPredicate,
        channel: "asyncio.Queue[ChangeEvent]",
    ):
        self.feed = feed
        self.table = table
        self.predicate = predicate
        self.channel = channel
        self.closed = False

    def offer(self, change: ChangeEvent) -> bool:
        """Queue the event if it matches. Returns True when delivered."""
        if self.closed or change.table != self.table:
            return False
        if not (self.predicate(change.record) or self.predicate(change.old_record)):
            return False

        self.channel.put_nowait(change)
        if self.channel.qsize() == settings.REALTIME_QUEUE_WARN_SIZE:
            logger.warning(
                f"Realtime channel for {self.table} has {self.channel.qsize()} queued events"
            )
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.feed._remove(self)

    async def get(self) -> ChangeEvent:
        return await self.channel.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class ChangeFeed:
    """Fan-out of committed row changes to subscriptions."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}

    @property
    def subscriber_count(self) -> int:
        return sum(len(subs) for subs in self._subscriptions.values())

    def subscribe(
        self,
        table: str,
        predicate: RowPredicate = all_rows,
        channel: "asyncio.Queue[ChangeEvent] | None" = None,
    ) -> Subscription:
        if table not in TRACKED_TABLES:
            raise ValueError(f"Table {table!r} is not published on the change feed")

        subscription = Subscription(self, table, predicate, channel or asyncio.Queue())
        self._subscriptions.setdefault(table, []).append(subscription)
        logger.debug(f"Subscribed to {table} ({self.subscriber_count} active)")
        return subscription

    def listen(
        self,
        table: str,
        predicate: RowPredicate,
        on_event: Callable[[ChangeEvent], Awaitable[None]],
    ) -> Callable[[], Awaitable[None]]:
        """
        Subscribe and drive `on_event` from a single task.
        Returns an awaitable unsubscribe handle.
        """
        subscription = self.subscribe(table, predicate)

        async def pump() -> None:
            while True:
                change = await subscription.get()
                try:
                    await on_event(change)
                except Exception:
                    logger.exception(f"Change handler for {table} failed")

        task = asyncio.create_task(pump())

        async def unsubscribe() -> None:
            subscription.close()
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        return unsubscribe

    def publish(self, changes: Iterable[ChangeEvent]) -> int:
        delivered = 0
        for change in changes:
            for subscription in list(self._subscriptions.get(change.table, ())):
                if subscription.offer(change):
                    delivered += 1
        return delivered

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.table, [])
        if subscription in subs:
            subs.remove(subscription)
        logger.debug(f"Unsubscribed from {subscription.table} ({self.subscriber_count} active)")


def bind_change_feed(session, feed: ChangeFeed | None) -> None:
    """Publish commits of `session` (sync or async) to `feed`."""
    if feed is None:
        session.info.pop(_FEED_KEY, None)
    else:
        session.info[_FEED_KEY] = feed


# Unit of work capture


def _table_name(obj) -> str | None:
    table = getattr(type(obj), "__table__", None)
    if table is None or table.name not in TRACKED_TABLES:
        return None
    return table.name


def row_snapshot(obj) -> dict[str, Any]:
    state = inspect(obj)
    return {
        prop.key: state.dict[prop.key]
        for prop in state.mapper.column_attrs
        if prop.key in state.dict
    }


def _previous_snapshot(obj) -> dict[str, Any]:
    state = inspect(obj)
    previous = row_snapshot(obj)
    for prop in state.mapper.column_attrs:
        history = state.attrs[prop.key].history
        if history.deleted:
            previous[prop.key] = history.deleted[0]
    return previous


def record_change(
    session,
    obj,
    change_type: ChangeType,
    old_record: Mapping[str, Any] | None = None,
) -> None:
    """
    Queue a change written with an UPDATE/DELETE statement instead of the unit
    of work, which the flush hooks never see. Published with the session's next
    commit and discarded on rollback like any captured change.
    """
    if session.info.get(_FEED_KEY) is None:
        return
    table = _table_name(obj)
    if table is None:
        return

    record = {} if change_type == ChangeType.DELETE else row_snapshot(obj)
    session.info.setdefault(_PENDING_KEY, []).append(
        (table, change_type, record, dict(old_record or {}))
    )


@event.listens_for(Session, "after_flush")
def _collect_changes(session: Session, flush_context) -> None:
    if session.info.get(_FEED_KEY) is None:
        return

    pending = session.info.setdefault(_PENDING_KEY, [])

    for obj in session.new:
        table = _table_name(obj)
        if table:
            pending.append((table, ChangeType.INSERT, row_snapshot(obj), {}))

    for obj in session.dirty:
        table = _table_name(obj)
        if table and session.is_modified(obj, include_collections=False):
            pending.append(
                (table, ChangeType.UPDATE, row_snapshot(obj), _previous_snapshot(obj))
            )

    for obj in session.deleted:
        table = _table_name(obj)
        if table:
            pending.append((table, ChangeType.DELETE, {}, row_snapshot(obj)))


@event.listens_for(Session, "after_commit")
def _publish_changes(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    feed = session.info.get(_FEED_KEY)
    if not pending or feed is None:
        return

    committed_at = datetime.now(timezone.utc)
    changes = [
        ChangeEvent(
            table=table,
            type=change_type,
            record=MappingProxyType(record),
            old_record=MappingProxyType(old_record),
            committed_at=committed_at,
        )
        for table, change_type, record, old_record in pending
    ]
    delivered = feed.publish(changes)
    logger.debug(f"Published {len(changes)} change events ({delivered} deliveries)")


@event.listens_for(Session, "after_rollback")
def _discard_changes(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)
