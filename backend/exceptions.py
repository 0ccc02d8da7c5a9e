"""Typed application errors.

Services raise these; the handlers in error_handlers.py turn them into
JSON ``{"message": ...}`` responses with the matching status code.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for all application errors.

    Attributes:
        message: Human-readable message, surfaced to the user as-is
        details: Optional debug context, only rendered in debug mode
        status_code: HTTP status code (set by subclasses)
    """

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input (HTTP 400)."""

    status_code = 400
    default_message = "Validation failed"


class ConflictError(AppError):
    """Duplicate unique key (HTTP 400, as the dashboard client expects)."""

    status_code = 400
    default_message = "Resource already exists"


class AccountInactiveError(AppError):
    """Credentials are valid but the account has not been activated."""

    status_code = 400
    default_message = "Account not activated. Please check your email."


class InvalidOrExpiredTokenError(AppError):
    """Setup/reset token is unknown or past its expiry."""

    status_code = 400
    default_message = "Token is invalid or has expired"


class UnauthorizedError(AppError):
    """Missing or invalid credentials (HTTP 401)."""

    status_code = 401
    default_message = "Token is not valid"


class ForbiddenError(AppError):
    """Authenticated but not allowed (HTTP 403)."""

    status_code = 403
    default_message = "Access denied"


class NotFoundError(AppError):
    """Requested id does not resolve (HTTP 404)."""

    status_code = 404
    default_message = "Resource not found"


class PayloadTooLargeError(AppError):
    """Upload exceeds the configured ceiling (HTTP 413)."""

    status_code = 413
    default_message = "File too large"


class UpstreamFailure(AppError):
    """Database, storage, auth provider or mail provider error (HTTP 500)."""

    status_code = 500
    default_message = "Upstream service error"
