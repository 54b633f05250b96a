from datetime import timedelta

import pytest
from httpx import AsyncClient

from bookswap.core.security import create_access_token


@pytest.mark.asyncio
async def test_register_success(client: AsyncClient):
    user_data = {
        "email": "newuser@example.com",
        "password": "securepassword123",
        "name": "New Reader",
    }

    response = await client.post("/api/v1/auth/register", json=user_data)

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == user_data["email"]
    assert "id" in data
    assert "created_at" in data
    assert "password" not in data
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_register_creates_profile(client: AsyncClient, auth_token: str):
    response = await client.get(
        "/api/v1/profiles/me",
        headers={"Authorization": f"Bearer {auth_token}"},
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Test Reader"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, registered_user: dict):
    user_data = {
        "email": registered_user["email"],
        "password": "anotherpassword123",
    }

    response = await client.post("/api/v1/auth/register", json=user_data)

    assert response.status_code == 409
    assert response.json()["code"] == "RESOURCE_ALREADY_EXISTS"
    assert response.json()["field"] == "email"


@pytest.mark.asyncio
async def test_register_invalid_email(client: AsyncClient):
    user_data = {
        "email": "invalid-email",
        "password": "securepassword123",
    }

    response = await client.post("/api/v1/auth/register", json=user_data)

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient):
    user_data = {
        "email": "test@example.com",
        "password": "short",
    }

    response = await client.post("/api/v1/auth/register", json=user_data)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, registered_user: dict):
    response = await client.post(
        "/api/v1/auth/login",
        data={
            "username": registered_user["email"],
            "password": registered_user["password"],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_is_case_insensitive_on_email(client: AsyncClient, registered_user: dict):
    response = await client.post(
        "/api/v1/auth/login",
        data={
            "username": registered_user["email"].upper(),
            "password": registered_user["password"],
        },
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, registered_user: dict):
    response = await client.post(
        "/api/v1/auth/login",
        data={
            "username": registered_user["email"],
            "password": "wrongpassword",
        },
    )

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_nonexistent_user(client: AsyncClient):
    response = await client.post(
        "/api/v1/auth/login",
        data={
            "username": "nonexistent@example.com",
            "password": "somepassword",
        },
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_me_authenticated(client: AsyncClient, registered_user: dict, auth_token: str):
    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {auth_token}"},
    )

    assert response.status_code == 200
    assert response.json()["email"] == registered_user["email"]


@pytest.mark.asyncio
async def test_get_me_unauthenticated(client: AsyncClient):
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_NOT_AUTHENTICATED"


@pytest.mark.asyncio
async def test_get_me_invalid_token(client: AsyncClient):
    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": "Bearer invalid_token"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_TOKEN_INVALID"


@pytest.mark.asyncio
async def test_get_me_expired_token(client: AsyncClient, registered_user: dict):
    token = create_access_token(
        registered_user["response"]["id"],
        expires_delta=timedelta(minutes=-5),
    )

    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "AUTH_TOKEN_INVALID"


@pytest.mark.asyncio
async def test_health_reports_database(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_format(client: AsyncClient):
    response = await client.get("/api/v1/shelves/")

    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found", "code": "RESOURCE_NOT_FOUND"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_invalid_body_lists_field_errors(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={"email": "not-an-email"})

    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert {tuple(error["loc"]) for error in data["detail"]} >= {
        ("body", "email"),
        ("body", "password"),
    }
