"""
Domain error taxonomy.

Every error is an HTTPException so FastAPI renders it without extra handlers.
Detail shape matches the rest of the API: {"code": ..., "message": ...}.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for errors surfaced verbatim to the caller."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "ERROR"

    def __init__(self, message: str, code: str | None = None, **extra: Any) -> None:
        detail: dict[str, Any] = {"code": code or self.default_code, "message": message}
        detail.update(extra)
        super().__init__(status_code=self.http_status, detail=detail)

    @property
    def code(self) -> str:
        return self.detail["code"]

    @property
    def message(self) -> str:
        return self.detail["message"]


class NotFoundError(DomainError):
    http_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class UnauthorizedError(DomainError):
    http_status = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(DomainError):
    http_status = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class ConflictError(DomainError):
    http_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class ConcurrentModificationError(ConflictError):
    """Another writer changed the document between our read and our write. Retryable."""

    default_code = "CONCURRENT_MODIFICATION"

    def __init__(self, message: str = "Resource was modified concurrently, retry the request") -> None:
        super().__init__(message, retryable=True)


class BadRequestError(DomainError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_code = "BAD_REQUEST"


class InvalidTransitionError(DomainError):
    http_status = 422
    default_code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str, allowed: list[str] | None = None) -> None:
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            **{"from": current, "to": requested, "allowed": allowed or []},
        )
        self.current = current
        self.requested = requested


class LedgerWriteError(DomainError):
    """The activity entry for a mutation could not be written; the mutation is failed."""

    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "LEDGER_WRITE_FAILED"
