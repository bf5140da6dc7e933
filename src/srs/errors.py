"""Typed errors raised by the spaced-repetition scheduler.

Callers map each class to a response: validation problems are the caller's
fault, missing resources are reported without revealing ownership, and
storage failures are transient and may be retried as a whole.
"""

from __future__ import annotations


class SRSError(Exception):
    """Base class for all scheduler errors."""

    code = "SRS_ERROR"


class ValidationError(SRSError):
    """Input was malformed or out of range; nothing was attempted."""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class NotFoundError(SRSError):
    """The resource does not exist or is not owned by the caller."""

    code = "NOT_FOUND"


class StorageError(SRSError):
    """The record store failed or timed out during a required step."""

    code = "STORAGE_ERROR"


class ConflictError(SRSError):
    """The caller's view of the latest review is stale."""

    code = "CONFLICT"

    def __init__(self, expected: str, actual: str | None) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Latest review is {actual or 'absent'}, caller expected {expected}"
        )
