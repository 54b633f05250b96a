"""
Global exception handlers for the Bookswap API.

Every error leaves the API as `{"detail", "code"}` plus `field` and
`metadata` when the exception carries them, with an `X-Request-ID` header
that matches the log line. Clients branch on `code`, e.g.
`MATCH_DUPLICATE_REQUEST` to show the existing request instead of a retry
button, or `MATCH_ALREADY_RESOLVED` (with `metadata.status`) to refresh a
stale match card.
"""

import logging
import uuid
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookswap.core.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)

# Errors raised by FastAPI/Starlette itself (unknown route, wrong method, ...)
_HTTP_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTH_NOT_AUTHENTICATED,
    403: ErrorCode.AUTHZ_FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    503: ErrorCode.SERVER_UNAVAILABLE,
}


def generate_request_id() -> str:
    return str(uuid.uuid4())[:8]


def _error_response(status_code: int, body: dict[str, Any], request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body,
        headers={"X-Request-ID": request_id},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render domain errors raised by the services.

    The exception decides code and status: `SelfMatchForbiddenError` is 400
    `MATCH_SELF_REQUEST`, `DuplicateRequestError` 409 `MATCH_DUPLICATE_REQUEST`,
    `ReferentialError` 422 `RESOURCE_REFERENCE_INVALID` with the offending
    field, `StoreUnavailableError` 503 `SERVER_UNAVAILABLE`.
    """
    request_id = generate_request_id()
    logger.warning(
        "%s: %s (status=%d, request_id=%s, path=%s)",
        exc.code.value,
        exc.message,
        exc.status_code,
        request_id,
        request.url.path,
    )
    return _error_response(exc.status_code, exc.to_dict(), request_id)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request bodies that fail schema validation, e.g. a decision other than accepted/declined."""
    request_id = generate_request_id()
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.warning(
        "Invalid request body on %s (request_id=%s): %s",
        request.url.path,
        request_id,
        errors,
    )
    body = {"detail": errors, "code": ErrorCode.VALIDATION_ERROR.value}
    return _error_response(422, body, request_id)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    request_id = generate_request_id()
    error_code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.SERVER_ERROR)
    logger.warning(
        "HTTP %d on %s (request_id=%s): %s",
        exc.status_code,
        request.url.path,
        request_id,
        exc.detail,
    )
    body = {"detail": exc.detail or "An error occurred", "code": error_code.value}
    return _error_response(exc.status_code, body, request_id)


async def store_unavailable_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    """
    Driver level failures (refused connection, lost server, locked SQLite file)
    that escaped the services render as 503 `SERVER_UNAVAILABLE`, the same
    code `ensure_store_reachable` produces up front.
    """
    request_id = generate_request_id()
    logger.error(
        "Database unavailable on %s (request_id=%s): %s",
        request.url.path,
        request_id,
        exc.orig,
    )
    body = {"detail": "Failed to connect to database", "code": ErrorCode.SERVER_UNAVAILABLE.value}
    return _error_response(503, body, request_id)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = generate_request_id()
    logger.exception(
        "Unhandled exception on %s (request_id=%s): %s",
        request.url.path,
        request_id,
        exc,
    )
    body = {
        "detail": "An internal error occurred. Please try again later.",
        "code": ErrorCode.SERVER_ERROR.value,
    }
    return _error_response(500, body, request_id)
