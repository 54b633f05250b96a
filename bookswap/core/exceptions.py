"""
Custom exception classes for the Bookswap application.
Provides structured error handling with machine-readable error codes.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes matching frontend for consistency"""

    # Authentication errors (401)
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_NOT_AUTHENTICATED = "AUTH_NOT_AUTHENTICATED"

    # Authorization errors (403)
    AUTHZ_FORBIDDEN = "AUTHZ_FORBIDDEN"

    # Resource errors (404, 409, 422)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_ALREADY_EXISTS = "RESOURCE_ALREADY_EXISTS"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    RESOURCE_REFERENCE_INVALID = "RESOURCE_REFERENCE_INVALID"

    # Match workflow errors (400, 409)
    MATCH_SELF_REQUEST = "MATCH_SELF_REQUEST"
    MATCH_DUPLICATE_REQUEST = "MATCH_DUPLICATE_REQUEST"
    MATCH_ALREADY_RESOLVED = "MATCH_ALREADY_RESOLVED"

    # Validation errors (400, 422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    VALIDATION_REQUIRED_FIELD = "VALIDATION_REQUIRED_FIELD"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500+)
    SERVER_ERROR = "SERVER_ERROR"
    SERVER_UNAVAILABLE = "SERVER_UNAVAILABLE"


class AppException(Exception):
    """
    Base exception class for application errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SERVER_ERROR,
        status_code: int = 500,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.metadata = metadata or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary"""
        response = {
            "detail": self.message,
            "code": self.code.value,
        }
        if self.field:
            response["field"] = self.field
        if self.metadata:
            response["metadata"] = self.metadata
        return response


# Authentication Errors (401)


class AuthenticationError(AppException):
    """No authenticated user for the request"""

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.AUTH_NOT_AUTHENTICATED,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=401,
            field=field,
            metadata=metadata,
        )


class InvalidCredentialsError(AuthenticationError):
    """Invalid email or password"""

    def __init__(
        self,
        message: str = "Incorrect email or password",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.AUTH_INVALID_CREDENTIALS,
            field=field,
        )


class TokenInvalidError(AuthenticationError):
    """JWT token is invalid or expired"""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            code=ErrorCode.AUTH_TOKEN_INVALID,
        )


# Authorization Errors (403)


class NotAuthorizedError(AppException):
    """Actor fails an ownership check"""

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.AUTHZ_FORBIDDEN,
            status_code=403,
            field=field,
            metadata=metadata,
        )


# Resource Errors (404, 409, 422)


class NotFoundError(AppException):
    """Resource not found"""

    def __init__(
        self,
        message: str = "The requested resource was not found",
        resource: str | None = None,
    ):
        metadata = {"resource": resource} if resource else None
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_NOT_FOUND,
            status_code=404,
            metadata=metadata,
        )


class BookNotFoundError(NotFoundError):
    def __init__(self, message: str = "Book not found"):
        super().__init__(message=message, resource="book")


class MatchNotFoundError(NotFoundError):
    def __init__(self, message: str = "Match not found"):
        super().__init__(message=message, resource="match")


class AlreadyExistsError(AppException):
    """Resource already exists"""

    def __init__(
        self,
        message: str = "This resource already exists",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_ALREADY_EXISTS,
            status_code=409,
            field=field,
        )


class ReferentialError(AppException):
    """A referenced row (book, user) is invalid"""

    def __init__(
        self,
        message: str = "Invalid book or user reference",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.RESOURCE_REFERENCE_INVALID,
            status_code=422,
            field=field,
        )


# Match workflow errors


class SelfMatchForbiddenError(AppException):
    """Requester owns the requested book"""

    def __init__(self, message: str = "You cannot request your own book"):
        super().__init__(
            message=message,
            code=ErrorCode.MATCH_SELF_REQUEST,
            status_code=400,
            field="book_requested_id",
        )


class DuplicateRequestError(AppException):
    """A match for this requester and book already exists"""

    def __init__(self, message: str = "You have already requested this book"):
        super().__init__(
            message=message,
            code=ErrorCode.MATCH_DUPLICATE_REQUEST,
            status_code=409,
            field="book_requested_id",
        )


class AlreadyResolvedError(AppException):
    """Match is no longer pending"""

    def __init__(
        self,
        message: str = "This match has already been resolved",
        status: str | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.MATCH_ALREADY_RESOLVED,
            status_code=409,
            metadata={"status": status} if status else None,
        )


# Validation Errors (400, 422)


class ValidationError(AppException):
    """Validation error"""

    def __init__(
        self,
        message: str = "Please check the submitted data",
        field: str | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=422,
            field=field,
        )


class RequiredFieldError(ValidationError):
    """Required field missing"""

    def __init__(
        self,
        message: str = "This field is required",
        field: str | None = None,
    ):
        super().__init__(
            message=message,
            field=field,
            code=ErrorCode.VALIDATION_REQUIRED_FIELD,
        )


# Server Errors (500, 503)


class ServerError(AppException):
    """Internal server error"""

    def __init__(
        self,
        message: str = "An internal error occurred",
        code: ErrorCode = ErrorCode.SERVER_ERROR,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=500,
        )


class StoreUnavailableError(AppException):
    """Database cannot be reached"""

    def __init__(self, message: str = "Failed to connect to database"):
        super().__init__(
            message=message,
            code=ErrorCode.SERVER_UNAVAILABLE,
            status_code=503,
        )
