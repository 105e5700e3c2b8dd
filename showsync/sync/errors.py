"""Error taxonomy for paginated sync."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync failures."""

    retryable: bool = False


class TransientError(SyncError):
    """Network or server-side failure that may succeed on retry."""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FatalError(SyncError):
    """Authentication, not-found or malformed-data failure; never retried."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConstraintViolation(SyncError):
    """A uniqueness conflict that could not be recovered by re-reading."""


def is_transient_error(error: BaseException) -> bool:
    """Return True when ``error`` is worth retrying."""
    if isinstance(error, SyncError):
        return error.retryable
    return isinstance(error, (TimeoutError, ConnectionError))
