"""Application error taxonomy.

Every error carries the HTTP status it maps to; ``error_handlers`` renders them
as ``{success: false, error}``. Inside a sync batch, ``ValidationError`` and
``NotFoundOrForbidden`` are caught per delta and reported in ``errors``.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, details: object | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Missing or malformed field (title, content, email, password, date)."""

    status_code = 400


class NotFoundOrForbidden(AppError):
    """Record is absent or owned by another principal; the two are indistinguishable."""

    status_code = 404


class Unauthorized(AppError):
    status_code = 401


class Conflict(AppError):
    """Duplicate unique identity (e.g. email already registered)."""

    status_code = 400
