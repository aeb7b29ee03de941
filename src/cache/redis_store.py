# src/cache/redis_store.py — v2
"""Redis-based record store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments. Each user owns a set
of keys so cleanup deletes exactly the user's rows.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from recordloader.cache.base_cache_store import BaseRecordStore
from recordloader.core.exceptions import CacheStorageError
from recordloader.core.models import CachedRecordEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "recordloader:record:"
_USER_PREFIX = "recordloader:user:"


class RedisRecordStore(BaseRecordStore):
    """Redis-backed record store for distributed deployments."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._redis_error = redis.RedisError
        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    async def get(self, key: str) -> CachedRecordEntry | None:
        """Retrieve cache entry by key."""
        try:
            data = self._client.get(f"{_KEY_PREFIX}{key}")
        except self._redis_error as e:
            raise CacheStorageError(f"Failed to read cache entry {key}: {e}") from e
        if data is None:
            return None
        return _deserialize(key, data)

    async def get_batch(self, keys: list[str]) -> dict[str, CachedRecordEntry]:
        """Retrieve entries with a single MGET."""
        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}
        try:
            values = self._client.mget([f"{_KEY_PREFIX}{k}" for k in unique])
        except self._redis_error as e:
            raise CacheStorageError(f"Failed to batch-read cache entries: {e}") from e
        found: dict[str, CachedRecordEntry] = {}
        for key, data in zip(unique, values):
            if data is None:
                continue
            entry = _deserialize(key, data)
            if entry is not None:
                found[key] = entry
        return found

    async def put(self, entry: CachedRecordEntry) -> None:
        """Store a cache entry and index it under its owner."""
        try:
            previous = await self.get(entry.key)
            self._client.set(f"{_KEY_PREFIX}{entry.key}", entry.model_dump_json())
            if previous is not None and previous.user_id not in (None, entry.user_id):
                self._client.srem(f"{_USER_PREFIX}{previous.user_id}", entry.key)
            if entry.user_id is not None:
                self._client.sadd(f"{_USER_PREFIX}{entry.user_id}", entry.key)
        except self._redis_error as e:
            raise CacheStorageError(f"Failed to write cache entry {entry.key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        entry = await self.get(key)
        try:
            self._client.delete(f"{_KEY_PREFIX}{key}")
            if entry is not None and entry.user_id is not None:
                self._client.srem(f"{_USER_PREFIX}{entry.user_id}", key)
        except self._redis_error as e:
            raise CacheStorageError(f"Failed to delete cache entry {key}: {e}") from e

    async def delete_by_user_id(self, user_id: str) -> int:
        """Delete every key in the user's set, then the set itself."""
        user_key = f"{_USER_PREFIX}{user_id}"
        try:
            keys = self._client.smembers(user_key)
            removed = 0
            if keys:
                removed = self._client.delete(*(f"{_KEY_PREFIX}{k}" for k in keys))
            self._client.delete(user_key)
        except self._redis_error as e:
            raise CacheStorageError(f"Failed to clean up cache for user {user_id}: {e}") from e
        return int(removed)

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()


def _deserialize(key: str, data: str) -> CachedRecordEntry | None:
    try:
        return CachedRecordEntry.model_validate_json(data)
    except ValidationError as e:
        logger.warning("Failed to deserialize cache entry %s: %s", key, e)
        return None
