# src/cache/cache_factory.py — v3
"""Factory for record store instantiation."""

from __future__ import annotations

from recordloader.cache.base_cache_store import BaseRecordStore
from recordloader.config.settings import Settings


def create_record_store(settings: Settings | None = None) -> BaseRecordStore:
    """Instantiate the configured record store backend.

    Args:
        settings: Application settings. Defaults to SQLite under the default root.

    Returns:
        Configured BaseRecordStore implementation.
    """
    backend = "sqlite" if settings is None else settings.cache_backend
    cache_root = "~/.recordloader/cache" if settings is None else str(settings.cache_root)

    if backend == "sqlite":
        from recordloader.cache.sqlite_store import SqliteRecordStore
        return SqliteRecordStore(db_path=f"{cache_root}/record_cache.db")

    if backend == "json":
        from recordloader.cache.json_store import JsonRecordStore
        return JsonRecordStore(cache_root=cache_root)

    if backend == "redis":
        from recordloader.cache.redis_store import RedisRecordStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisRecordStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
