"""
app/exceptions.py
-----------------
Error types raised by the data accessors and the care priority service.

Routers turn these into HTTP errors; the background assessment pipeline
logs them and carries on.
"""

from __future__ import annotations

from typing import Any


class CarePriorityError(Exception):
    """Base exception for the care priority backend."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class DataAccessError(CarePriorityError):
    """Storage or network failure while reading or writing user data."""

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code="DATA_ACCESS_ERROR",
            details={"operation": operation, **(details or {})},
        )
        self.operation = operation


class ProfileNotFoundError(CarePriorityError):
    """No risk profile exists for the user."""

    def __init__(self, user_id: str):
        super().__init__(
            message=f"User profile not found: {user_id}",
            code="PROFILE_NOT_FOUND",
            details={"user_id": user_id},
        )
        self.user_id = user_id


class AssessmentUnavailableError(CarePriorityError):
    """Every data source failed, so not even the conservative default applies."""

    def __init__(self, user_id: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Assessment unavailable for user {user_id}",
            code="ASSESSMENT_UNAVAILABLE",
            details={"user_id": user_id, **(details or {})},
        )
        self.user_id = user_id
