"""
Error types for Quote Sync.

Failure policy:
- StorageError / ParseError: swallowed where they occur, logged, defaults kept
- NetworkError: aborts the running sync cycle only, retried next cycle
- ValidationError: raised to the caller of the mutating operation
"""

from __future__ import annotations


class QuoteSyncError(Exception):
    """Base exception for Quote Sync."""


class StorageError(QuoteSyncError):
    """Raised when a durable document cannot be read or written."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ParseError(QuoteSyncError):
    """Raised when persisted or imported JSON is malformed."""


class NetworkError(QuoteSyncError):
    """Raised when a push or pull fails."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class ValidationError(QuoteSyncError):
    """Raised when a record has empty text or category."""
