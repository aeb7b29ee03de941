# src/core/exceptions.py — v1
"""Error taxonomy for record resolution and caching."""

from __future__ import annotations


class RecordLoaderError(Exception):
    """Base class for all record loader errors."""


class RecordMissingError(RecordLoaderError):
    """Record could not be found and the caller did not tolerate gaps."""

    def __init__(self, source: str, record_id: str) -> None:
        self.source = source
        self.record_id = record_id
        super().__init__(f"Record {source}:{record_id} does not exist.")


class CacheStorageError(RecordLoaderError):
    """The record cache backend failed to read or write."""


class LiveRetrievalError(RecordLoaderError):
    """The live retrieval backend failed (transport error, timeout, bad payload)."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"Live retrieval from {source} failed: {message}")
