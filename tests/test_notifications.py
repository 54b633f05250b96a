import uuid

import pytest
from httpx import AsyncClient

from bookswap.schemas.user import UserCreate
from bookswap.services import notification_service, user_service


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def notify(db, user_id, title: str = "Hello"):
    return await notification_service.create_notification(
        db,
        user_id=uuid.UUID(user_id),
        type="match_accepted",
        title=title,
        message=f"{title} message",
        data={"book_title": "Dune"},
    )


@pytest.mark.asyncio
async def test_no_notification_for_own_action(db_session):
    user = await user_service.create_user(
        db_session, UserCreate(email="a@example.com", password="password123")
    )

    created = await notification_service.create_notification(
        db_session,
        user_id=user.id,
        actor_id=user.id,
        type="match_accepted",
        title="Self",
        message="Self",
    )

    assert created is None
    assert await notification_service.get_unread_notification_count(db_session, user.id) == 0


@pytest.mark.asyncio
async def test_list_and_paginate(client: AsyncClient, db_session, make_user):
    token, user_id = await make_user("a@example.com", "Alice")
    for i in range(3):
        await notify(db_session, user_id, f"N{i}")

    response = await client.get(
        "/api/v1/notifications/",
        params={"page": 1, "per_page": 2},
        headers=auth(token),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["unread"] == 3
    assert [n["title"] for n in data["notifications"]] == ["N2", "N1"]


@pytest.mark.asyncio
async def test_mark_one_read(client: AsyncClient, db_session, make_user):
    token, user_id = await make_user("a@example.com", "Alice")
    notification = await notify(db_session, user_id)
    notification_id = str(notification.id)

    response = await client.post(
        f"/api/v1/notifications/{notification_id}/read", headers=auth(token)
    )

    assert response.status_code == 200
    assert response.json()["read"] is True

    unread = await client.get("/api/v1/notifications/unread-count", headers=auth(token))
    assert unread.json() == {"count": 0}

    only_unread = await client.get(
        "/api/v1/notifications/", params={"unread_only": True}, headers=auth(token)
    )
    assert only_unread.json()["total"] == 0


@pytest.mark.asyncio
async def test_cannot_mark_someone_elses_notification(client: AsyncClient, db_session, make_user):
    _, user_a = await make_user("a@example.com", "Alice")
    token_b, _ = await make_user("b@example.com", "Bob")
    notification = await notify(db_session, user_a)

    response = await client.post(
        f"/api/v1/notifications/{notification.id}/read", headers=auth(token_b)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_mark_unknown_notification(client: AsyncClient, make_user):
    token, _ = await make_user("a@example.com", "Alice")

    response = await client.post(
        f"/api/v1/notifications/{uuid.uuid4()}/read", headers=auth(token)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_mark_all_read(client: AsyncClient, db_session, make_user):
    token, user_id = await make_user("a@example.com", "Alice")
    await notify(db_session, user_id, "One")
    await notify(db_session, user_id, "Two")

    response = await client.post("/api/v1/notifications/read-all", headers=auth(token))
    assert response.json() == {"updated": 2}

    response = await client.post("/api/v1/notifications/read-all", headers=auth(token))
    assert response.json() == {"updated": 0}
