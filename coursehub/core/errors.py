"""Operational error taxonomy.

Every error a caller may legitimately trigger derives from ``ApiError`` and
carries a fixed HTTP status plus a safe-to-display message. Resource packages
subclass these with their own default messages and codes; ``main.py`` renders
them with the standard error envelope.
"""

from fastapi import status


class ApiError(Exception):
    """Base operational error."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"
    default_code: str = "api_error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)


class BadRequestError(ApiError):
    """Malformed input or an operation invalid for the current state."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"
    default_code = "bad_request"


class UnauthorizedError(ApiError):
    """Missing, invalid or expired credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"
    default_code = "unauthorized"


class ForbiddenError(ApiError):
    """Authenticated but lacking the role or ownership required."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"
    default_code = "forbidden"


class NotFoundError(ApiError):
    """Resource absent."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"
    default_code = "not_found"


class ConflictError(ApiError):
    """Uniqueness or duplicate-state violation."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"
    default_code = "conflict"


class TooManyRequestsError(ApiError):
    """Caller must wait before retrying."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"
    default_code = "too_many_requests"
