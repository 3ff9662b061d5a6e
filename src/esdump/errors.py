"""
Error taxonomy for transfer runs.

Fatal setup errors abort before any record is written, fatal stream errors
abort extraction (already dispatched records still drain), per-record errors
are logged, counted and skipped.
"""

from __future__ import annotations

from typing import Optional


class TransferError(Exception):
    """Base class for all esdump pipeline errors."""

    pass


# --- fatal / setup ---


class ConfigurationError(TransferError):
    """Invalid job configuration (concurrency, page size, limit, format, ...)."""

    pass


class SinkOpenError(TransferError):
    """Destination could not be opened (file not creatable, ...)."""

    pass


class CountError(TransferError):
    """Total record count could not be fetched from the source."""

    pass


class MetadataError(TransferError):
    """Mapping/settings document could not be read, unwrapped or applied."""

    pass


# --- fatal / stream ---


class ExtractionError(TransferError):
    """Page fetch or continuation failed; the cursor is considered dead."""

    def __init__(self, message: str, *, enqueued: int = 0):
        super().__init__(message)
        self.enqueued = enqueued


class TransferCancelled(TransferError):
    """Run was cancelled from outside."""

    pass


class ChannelClosedError(TransferError):
    """Put or close on a dispatch channel that is already closed."""

    pass


# --- recoverable / per record ---


class RecordWriteError(TransferError):
    """A single record could not be applied to the destination."""

    def __init__(self, message: str, *, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id
