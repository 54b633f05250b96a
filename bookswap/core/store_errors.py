"""Classification of driver errors raised by the store."""

from enum import Enum

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.core.exceptions import StoreUnavailableError

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class StoreErrorKind(str, Enum):
    UNIQUE_VIOLATION = "unique_violation"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    OTHER = "other"


def classify_integrity_error(exc: IntegrityError) -> StoreErrorKind:
    """Map an IntegrityError from asyncpg or SQLite to a StoreErrorKind."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNIQUE_VIOLATION:
        return StoreErrorKind.UNIQUE_VIOLATION
    if code == FOREIGN_KEY_VIOLATION:
        return StoreErrorKind.FOREIGN_KEY_VIOLATION

    # SQLite only reports the constraint type in the message
    message = str(orig).lower()
    if "unique constraint" in message or "duplicate key" in message:
        return StoreErrorKind.UNIQUE_VIOLATION
    if "foreign key constraint" in message:
        return StoreErrorKind.FOREIGN_KEY_VIOLATION
    return StoreErrorKind.OTHER


async def ensure_store_reachable(db: AsyncSession) -> None:
    """Raise StoreUnavailableError when a trivial query cannot be executed."""
    try:
        await db.execute(text("SELECT 1"))
    except (OperationalError, OSError) as e:
        raise StoreUnavailableError(f"Failed to connect to database: {e}") from e
    except DBAPIError as e:
        if e.connection_invalidated:
            raise StoreUnavailableError("Database connection was lost") from e
        raise
