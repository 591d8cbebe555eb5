"""
Application error hierarchy for the API token subsystem.

AppError is the base for all typed errors. Expected failures are not raised:
they travel as ``Err(AppError)`` values (see shared.result) so every call
site handles both branches. ``status_code`` and ``to_dict()`` give the
request-handling layer a consistent JSON shape.

Anything that is not an AppError (programming errors) propagates normally.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


class AlreadyRevokedError(ConflictError):
    error_code = "already_revoked"


class StorageError(AppError):
    """Backing store failure. Retryable or fatal depending on the caller."""

    status_code = 503
    error_code = "storage_error"
