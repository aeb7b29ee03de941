# src/cache/base_cache_store.py — v2
"""Abstract record store interface (key-value persistence for the record cache)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from recordloader.core.models import CachedRecordEntry


class BaseRecordStore(ABC):
    """Unified interface for record cache storage backends.

    Implementations raise CacheStorageError on backend failures.
    """

    @abstractmethod
    async def get(self, key: str) -> CachedRecordEntry | None:
        """Retrieve a cache entry by key."""

    @abstractmethod
    async def get_batch(self, keys: list[str]) -> dict[str, CachedRecordEntry]:
        """Retrieve several entries in one round trip; misses are absent."""

    @abstractmethod
    async def put(self, entry: CachedRecordEntry) -> None:
        """Insert or replace the entry stored under ``entry.key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a cache entry."""

    @abstractmethod
    async def delete_by_user_id(self, user_id: str) -> int:
        """Remove every entry owned by ``user_id``. Returns the count removed."""

    def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
