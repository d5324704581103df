"""
Domain exceptions for the booking core.

Services raise these; the API layer turns them into HTTP responses through
the handler registered in main.py.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class BookingDomainError(Exception):
    """Base exception for all booking domain errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(BookingDomainError):
    """Malformed or missing required field."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(BookingDomainError):
    """Scheduling collision with an active booking of the same pair."""

    status_code = status.HTTP_409_CONFLICT


class StateError(BookingDomainError):
    """Illegal status transition."""

    status_code = status.HTTP_409_CONFLICT


class AuthorizationError(BookingDomainError):
    """Caller is not the booking's owner or assigned provider."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(BookingDomainError):
    """Unknown booking or service id."""

    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(BookingDomainError):
    """Store failure. Surfaced as an opaque error, never retried here."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def to_http_exception(self) -> HTTPException:
        # Cause stays in the logs
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": "The booking store is temporarily unavailable",
                "code": self.code,
                "details": {},
            },
        )
