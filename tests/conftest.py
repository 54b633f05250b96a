import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from typing import AsyncGenerator, Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bookswap.core.change_feed import ChangeFeed, bind_change_feed
from bookswap.database import Base, build_engine, get_db
from bookswap.main import app


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    # A database file per test; separate sessions get separate connections
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookswap_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def change_feed() -> ChangeFeed:
    return ChangeFeed()


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
    change_feed: ChangeFeed,
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        bind_change_feed(session, change_feed)
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    change_feed: ChangeFeed,
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    previous_feed = app.state.change_feed
    app.state.change_feed = change_feed

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.state.change_feed = previous_feed
    app.dependency_overrides.clear()


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def make_user(client: AsyncClient) -> Callable[..., Awaitable[tuple[str, str]]]:
    """Register and log in a user. Returns (token, user_id)."""

    async def _make_user(email: str, name: str | None = None, password: str = "password123"):
        await client.post(
            "/api/v1/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        login_response = await client.post(
            "/api/v1/auth/login",
            data={"username": email, "password": password},
        )
        token = login_response.json()["access_token"]

        me_response = await client.get("/api/v1/auth/me", headers=_auth(token))
        return token, me_response.json()["id"]

    return _make_user


@pytest_asyncio.fixture
async def make_book(client: AsyncClient) -> Callable[..., Awaitable[dict]]:
    """List a book as the token's user. Returns the response body."""

    async def _make_book(token: str, title: str = "Dune", **fields):
        payload = {
            "title": title,
            "author": fields.pop("author", "Frank Herbert"),
            "genre": fields.pop("genre", "Science Fiction"),
            "location": fields.pop("location", "Berlin"),
            **fields,
        }
        response = await client.post("/api/v1/books/", json=payload, headers=_auth(token))
        assert response.status_code == 201, response.text
        return response.json()

    return _make_book


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict:
    user_data = {
        "email": "test@example.com",
        "password": "testpassword123",
        "name": "Test Reader",
    }
    response = await client.post("/api/v1/auth/register", json=user_data)
    return {**user_data, "response": response.json()}


@pytest_asyncio.fixture
async def auth_token(client: AsyncClient, registered_user: dict) -> str:
    response = await client.post(
        "/api/v1/auth/login",
        data={
            "username": registered_user["email"],
            "password": registered_user["password"],
        },
    )
    return response.json()["access_token"]
