"""
Error taxonomy for the record lifecycle.

Every failure that leaves the core is one of these kinds. Each carries a short
machine-friendly ``kind`` and the HTTP status the API answers with, so the
transport layer maps them with a single handler.
"""

from __future__ import annotations

from typing import Optional


class FeedbackDeskError(Exception):
    """Base class for lifecycle and persistence failures."""

    kind: str = "internal_error"
    http_status: int = 500

    def __init__(self, message: str, *, record_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id

    def to_payload(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class ValidationError(FeedbackDeskError):
    """Malformed request or disallowed value; raised before any transaction opens."""

    kind = "validation_error"
    http_status = 400


class InvalidStatusError(ValidationError):
    kind = "invalid_status"


class AuthenticationError(FeedbackDeskError):
    """Missing or invalid bearer token."""

    kind = "unauthorized"
    http_status = 401


class NotFoundError(FeedbackDeskError):
    kind = "not_found"
    http_status = 404


class AlreadyAssignedError(FeedbackDeskError):
    """A claim lost against an existing handler. Expected under contention."""

    kind = "already_assigned"
    http_status = 409

    def __init__(
        self,
        message: str,
        *,
        record_id: Optional[int] = None,
        handler_id: Optional[int] = None,
    ) -> None:
        super().__init__(message, record_id=record_id)
        self.handler_id = handler_id


class ClarificationMissingError(FeedbackDeskError):
    """A complaint cannot be closed before a clarification type is recorded."""

    kind = "clarification_missing"
    http_status = 422


class PersistenceError(FeedbackDeskError):
    """
    Any database-level failure. Only a diagnostic string crosses the boundary;
    the driver exception is chained as ``__cause__`` for logging.
    """

    kind = "persistence_error"
    http_status = 500

    def __init__(
        self,
        message: str,
        *,
        record_id: Optional[int] = None,
        diagnostic: Optional[str] = None,
    ) -> None:
        super().__init__(message, record_id=record_id)
        self.diagnostic = diagnostic


__all__ = [
    "FeedbackDeskError",
    "ValidationError",
    "InvalidStatusError",
    "AuthenticationError",
    "NotFoundError",
    "AlreadyAssignedError",
    "ClarificationMissingError",
    "PersistenceError",
]
