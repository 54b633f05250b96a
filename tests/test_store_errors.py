import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError

from bookswap.core.exceptions import StoreUnavailableError
from bookswap.core.security import create_access_token
from bookswap.core.store_errors import (
    StoreErrorKind,
    classify_integrity_error,
    ensure_store_reachable,
)
from bookswap.database import get_db
from bookswap.main import app


class FakeDriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class UnreachableSession:
    """Stands in for an AsyncSession whose database is down."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, FakeDriverError("connection refused"))

    async def close(self):
        pass


@pytest.mark.parametrize(
    "orig, expected",
    [
        (FakeDriverError("duplicate key value", "23505"), StoreErrorKind.UNIQUE_VIOLATION),
        (FakeDriverError("violates foreign key", "23503"), StoreErrorKind.FOREIGN_KEY_VIOLATION),
        (
            FakeDriverError("UNIQUE constraint failed: matches.requester_id"),
            StoreErrorKind.UNIQUE_VIOLATION,
        ),
        (FakeDriverError("FOREIGN KEY constraint failed"), StoreErrorKind.FOREIGN_KEY_VIOLATION),
        (FakeDriverError("CHECK constraint failed: match_status_check"), StoreErrorKind.OTHER),
    ],
)
def test_classify_integrity_error(orig, expected):
    error = IntegrityError("INSERT INTO matches ...", {}, orig)

    assert classify_integrity_error(error) == expected


@pytest.mark.asyncio
async def test_ensure_store_reachable_raises_unavailable():
    with pytest.raises(StoreUnavailableError) as exc_info:
        await ensure_store_reachable(UnreachableSession())

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_ensure_store_reachable_passes(db_session):
    await ensure_store_reachable(db_session)


@pytest.mark.asyncio
async def test_unreachable_database_is_503(client: AsyncClient, registered_user: dict):
    async def unreachable_db():
        yield UnreachableSession()

    app.dependency_overrides[get_db] = unreachable_db
    token = create_access_token(registered_user["response"]["id"])

    response = await client.get(
        "/api/v1/books/",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 503
    assert response.json()["code"] == "SERVER_UNAVAILABLE"
