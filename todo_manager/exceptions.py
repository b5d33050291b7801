# PURPOSE: error taxonomy shared by stores, dependencies and routers.
# Each error knows its HTTP status; api/errors.py renders the envelope.

from __future__ import annotations

from collections.abc import Sequence


class AppError(Exception):
    """Base class for errors that map onto a response envelope."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, errors: Sequence[str] | None = None):
        self.message = message or self.default_message
        self.errors = list(errors) if errors else [self.message]
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid input"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class DomainRuleError(AppError):
    """Business-rule rejection; same status as validation, different meaning."""

    status_code = 400
    default_message = "Operation not allowed"


class AuthError(AppError):
    status_code = 401
    default_message = "Invalid token"

    def __init__(self, message: str | None = None, errors: Sequence[str] | None = None, *, expired: bool = False):
        self.expired = expired
        super().__init__(message, errors)


class InternalError(AppError):
    status_code = 500
