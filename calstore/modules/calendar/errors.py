"""Typed errors raised by the calendar storage layer."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for every calendar storage failure."""

    prefix = "Storage error"

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(f"{self.prefix}: {message}" if message else self.prefix)


class ConnectionFailed(StorageError):
    """The store could not be opened or configured. Fatal at startup."""

    prefix = "Connection failed"


class QueryFailed(StorageError):
    """A single operation failed to prepare or execute."""

    prefix = "Query failed"


class MigrationFailed(StorageError):
    """Schema setup failed. Fatal at startup."""

    prefix = "Migration failed"


class TransactionFailed(StorageError):
    """Reserved for multi-statement atomic operations."""

    prefix = "Transaction failed"


class NotFound(StorageError):
    """Raised by callers that need to tell "absent" apart from "error"."""

    prefix = "Not found"


class UnknownError(StorageError):
    """A stored value or payload could not be decoded or serialized."""

    prefix = "Unknown error"
