import pytest
from httpx import AsyncClient


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_update_my_profile(client: AsyncClient, make_user):
    token, _ = await make_user("reader@example.com", "Reader")

    response = await client.put(
        "/api/v1/profiles/me",
        json={"bio": "Mostly science fiction", "location": "Hamburg"},
        headers=auth(token),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["bio"] == "Mostly science fiction"
    assert data["location"] == "Hamburg"
    # Fields left out keep their value
    assert data["name"] == "Reader"


@pytest.mark.asyncio
async def test_get_other_profile(client: AsyncClient, make_user):
    token_a, _ = await make_user("a@example.com", "Alice")
    _, user_b = await make_user("b@example.com", "Bob")

    response = await client.get(f"/api/v1/profiles/{user_b}", headers=auth(token_a))

    assert response.status_code == 200
    assert response.json()["name"] == "Bob"


@pytest.mark.asyncio
async def test_get_unknown_profile(client: AsyncClient, make_user):
    token, _ = await make_user("a@example.com", "Alice")

    response = await client.get(
        "/api/v1/profiles/00000000-0000-0000-0000-000000000000",
        headers=auth(token),
    )

    assert response.status_code == 404
    assert response.json()["metadata"] == {"resource": "profile"}


@pytest.mark.asyncio
async def test_stats_count_books_and_accepted_swaps(client: AsyncClient, make_user, make_book):
    token_a, user_a = await make_user("a@example.com", "Alice")
    token_b, user_b = await make_user("b@example.com", "Bob")

    dune = await make_book(token_a, "Dune")
    await make_book(token_a, "Emma", author="Jane Austen", genre="Romance")
    hobbit = await make_book(token_b, "The Hobbit", author="J.R.R. Tolkien", genre="Fantasy")

    # B requests Dune, A accepts
    match = await client.post(
        "/api/v1/matches/",
        json={"book_requested_id": dune["id"]},
        headers=auth(token_b),
    )
    await client.post(
        f"/api/v1/matches/{match.json()['id']}/respond",
        json={"decision": "accepted"},
        headers=auth(token_a),
    )

    # A requests the Hobbit, B declines
    declined = await client.post(
        "/api/v1/matches/",
        json={"book_requested_id": hobbit["id"]},
        headers=auth(token_a),
    )
    await client.post(
        f"/api/v1/matches/{declined.json()['id']}/respond",
        json={"decision": "declined"},
        headers=auth(token_b),
    )

    stats_a = await client.get(f"/api/v1/profiles/{user_a}/stats", headers=auth(token_a))
    stats_b = await client.get(f"/api/v1/profiles/{user_b}/stats", headers=auth(token_a))

    assert stats_a.status_code == 200
    assert stats_a.json()["books_listed"] == 2
    assert stats_a.json()["successful_swaps"] == 1
    assert {b["title"] for b in stats_a.json()["books"]} == {"Dune", "Emma"}

    assert stats_b.json()["books_listed"] == 1
    assert stats_b.json()["successful_swaps"] == 1
