"""Typed service errors.

Services raise these; the API boundary (``middleware.error_handler``) maps each
kind to an HTTP status and a ``{"detail", "error"}`` JSON body.
"""

from __future__ import annotations


class FocusArenaError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    error_code: str = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(FocusArenaError):
    """Malformed or out-of-range input."""

    status_code = 400
    error_code = "validation_error"


class ConflictError(FocusArenaError):
    """An invariant would be violated (duplicate friendship, duplicate name...)."""

    status_code = 409
    error_code = "conflict"


class ActiveSessionExistsError(ConflictError):
    """Starting a session while another one is still open.

    Kept at 400 to honour the public contract of ``POST /sessions/start``.
    """

    status_code = 400
    error_code = "active_session_exists"


class PermissionDeniedError(FocusArenaError):
    """The relationship forbids the action (e.g. blocked user)."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(FocusArenaError):
    """Referenced entity is absent or not owned by the caller."""

    status_code = 404
    error_code = "not_found"


class UnavailableError(FocusArenaError):
    """Storage or cache transiently unreachable. Safe to retry."""

    status_code = 503
    error_code = "unavailable"
