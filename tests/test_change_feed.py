import asyncio
import logging
import uuid

import pytest
from sqlalchemy import select

from bookswap.config import settings
from bookswap.core.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeType,
    RowFilter,
    bind_change_feed,
    record_change,
)
from bookswap.models.book import Book
from bookswap.models.match import Match
from bookswap.schemas.book import BookCreate
from bookswap.schemas.user import UserCreate
from bookswap.services import book_service, match_service, user_service


async def _user(db, email: str):
    return await user_service.create_user(
        db, UserCreate(email=email, password="password123", name=email.split("@")[0])
    )


async def _book(db, owner_id, title: str = "Dune"):
    return await book_service.create_book(
        db,
        owner_id,
        BookCreate(title=title, author="Frank Herbert", genre="Science Fiction", location="Berlin"),
    )


def drain(queue: asyncio.Queue) -> list[ChangeEvent]:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


# RowFilter


def test_row_filter_parse_eq():
    row_filter = RowFilter.parse("requester_id=eq.abc")

    assert row_filter == RowFilter("requester_id", "eq", "abc")
    assert row_filter({"requester_id": "abc"})
    assert not row_filter({"requester_id": "xyz"})
    assert not row_filter({})


def test_row_filter_parse_in():
    row_filter = RowFilter.parse("book_requested_id=in.(a, b)")

    assert row_filter.value == ("a", "b")
    assert row_filter({"book_requested_id": "b"})
    assert not row_filter({"book_requested_id": "c"})


def test_row_filter_compares_uuid_and_string():
    user_id = uuid.uuid4()

    assert RowFilter("owner_id", "eq", str(user_id))({"owner_id": user_id})
    assert RowFilter("read", "eq", "false")({"read": False})


@pytest.mark.parametrize("expression", ["requester_id", "requester_id=gt.1", "=eq.1", "id=in.1"])
def test_row_filter_rejects_bad_expressions(expression):
    with pytest.raises(ValueError):
        RowFilter.parse(expression)


def test_subscribe_to_untracked_table():
    with pytest.raises(ValueError):
        ChangeFeed().subscribe("users")


def test_change_event_defaults_to_empty_rows():
    change = ChangeEvent("books", ChangeType.INSERT)

    assert dict(change.record) == {}
    assert dict(change.old_record) == {}
    assert change.row is change.record
    with pytest.raises(TypeError):
        change.record["id"] = "x"


def test_full_channel_warns_once(monkeypatch, caplog):
    monkeypatch.setattr(settings, "REALTIME_QUEUE_WARN_SIZE", 2)
    feed = ChangeFeed()
    subscription = feed.subscribe("books")

    with caplog.at_level(logging.WARNING, logger="bookswap.core.change_feed"):
        feed.publish(ChangeEvent("books", ChangeType.INSERT, {"id": n}) for n in range(5))

    assert subscription.channel.qsize() == 5
    warnings = [r for r in caplog.records if "queued events" in r.getMessage()]
    assert len(warnings) == 1


# Capture and delivery


@pytest.mark.asyncio
async def test_insert_is_published_after_commit(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    subscription = change_feed.subscribe("books", RowFilter("owner_id", "eq", str(owner.id)))

    book = await _book(db_session, owner.id)

    events = drain(subscription.channel)
    assert len(events) == 1
    event = events[0]
    assert event.table == "books"
    assert event.type == ChangeType.INSERT
    assert event.record["id"] == book.id
    assert event.record["title"] == "Dune"
    assert dict(event.old_record) == {}


@pytest.mark.asyncio
async def test_predicate_filters_rows(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    other = await _user(db_session, "other@example.com")
    subscription = change_feed.subscribe("books", RowFilter("owner_id", "eq", str(other.id)))

    await _book(db_session, owner.id)

    assert subscription.channel.empty()


@pytest.mark.asyncio
async def test_rollback_discards_changes(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    owner_id = owner.id
    subscription = change_feed.subscribe("books")

    db_session.add(
        Book(owner_id=owner_id, title="Draft", author="A", genre="G", location="L")
    )
    await db_session.flush()
    await db_session.rollback()

    assert subscription.channel.empty()


@pytest.mark.asyncio
async def test_update_carries_previous_values(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    requester = await _user(db_session, "req@example.com")
    book = await _book(db_session, owner.id)
    match = await match_service.request_match(db_session, book.id, None, requester.id)
    subscription = change_feed.subscribe("matches")

    await match_service.respond_to_match(db_session, match.id, "accepted", owner.id)

    events = drain(subscription.channel)
    assert [e.type for e in events] == [ChangeType.UPDATE]
    assert events[0].record["status"] == "accepted"
    assert events[0].old_record["status"] == "pending"


@pytest.mark.asyncio
async def test_book_delete_publishes_dependent_rows(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    requester = await _user(db_session, "req@example.com")
    book = await _book(db_session, owner.id)
    match = await match_service.request_match(db_session, book.id, None, requester.id)
    book_id, match_id = book.id, match.id

    channel: asyncio.Queue = asyncio.Queue()
    change_feed.subscribe("books", channel=channel)
    change_feed.subscribe("matches", RowFilter("requester_id", "eq", str(requester.id)), channel)

    await book_service.delete_book(db_session, book_id, owner.id)

    events = drain(channel)
    assert {(e.table, e.type) for e in events} == {
        ("matches", ChangeType.DELETE),
        ("books", ChangeType.DELETE),
    }
    for event in events:
        assert dict(event.record) == {}
    deleted_ids = {e.old_record["id"] for e in events}
    assert deleted_ids == {book_id, match_id}

    result = await db_session.execute(select(Match).where(Match.id == match_id))
    assert result.scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_unbound_session_publishes_nothing(session_maker, db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    subscription = change_feed.subscribe("books")

    async with session_maker() as other_session:
        await _book(other_session, owner.id)

    assert subscription.channel.empty()


@pytest.mark.asyncio
async def test_close_unregisters(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    subscription = change_feed.subscribe("books")
    assert change_feed.subscriber_count == 1

    subscription.close()
    subscription.close()

    assert change_feed.subscriber_count == 0
    await _book(db_session, owner.id)
    assert subscription.channel.empty()


@pytest.mark.asyncio
async def test_subscription_context_manager(change_feed):
    async with change_feed.subscribe("messages") as subscription:
        assert change_feed.subscriber_count == 1

    assert subscription.closed
    assert change_feed.subscriber_count == 0


@pytest.mark.asyncio
async def test_listen_runs_handler_until_unsubscribed(db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    seen: list[str] = []

    async def on_event(change: ChangeEvent) -> None:
        seen.append(change.record["title"])

    unsubscribe = change_feed.listen("books", RowFilter("owner_id", "eq", str(owner.id)), on_event)

    await _book(db_session, owner.id, "Dune")
    await _book(db_session, owner.id, "Emma")
    await asyncio.wait_for(_until(lambda: len(seen) == 2), timeout=5)

    await unsubscribe()
    await _book(db_session, owner.id, "Ulysses")
    await asyncio.sleep(0.05)

    assert seen == ["Dune", "Emma"]
    assert change_feed.subscriber_count == 0


async def _until(condition) -> None:
    while not condition():
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_recorded_change_follows_the_transaction(session_maker, db_session, change_feed):
    owner = await _user(db_session, "owner@example.com")
    book = await _book(db_session, owner.id)
    book_id = book.id
    subscription = change_feed.subscribe("books")

    async with session_maker() as session:
        bind_change_feed(session, change_feed)
        stored = await session.get(Book, book_id)

        record_change(session, stored, ChangeType.UPDATE, {"id": book_id, "title": "Draft"})
        await session.rollback()
        assert subscription.channel.empty()

        stored = await session.get(Book, book_id)
        record_change(session, stored, ChangeType.UPDATE, {"id": book_id, "title": "Draft"})
        await session.commit()

    events = drain(subscription.channel)
    assert len(events) == 1
    assert events[0].record["title"] == "Dune"
    assert events[0].old_record["title"] == "Draft"
