# src/cache/sqlite_store.py — v2
"""SQLite-based record store (CACHE_BACKEND=sqlite, default).

Uses stdlib sqlite3 — no external dependency. The user_id column is
indexed so per-user cleanup is a bulk indexed delete.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from recordloader.cache.base_cache_store import BaseRecordStore
from recordloader.core.exceptions import CacheStorageError
from recordloader.core.models import CachedRecordEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS record_cache (
    key TEXT PRIMARY KEY,
    source TEXT NOT NULL,
    record_id TEXT NOT NULL,
    user_id TEXT,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_record_cache_user_id ON record_cache(user_id);
CREATE INDEX IF NOT EXISTS idx_record_cache_source_record ON record_cache(source, record_id);
"""

# SQLite's default limit on bound parameters is 999 on older builds.
_BATCH_SIZE = 500


class SqliteRecordStore(BaseRecordStore):
    """SQLite-backed record store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise CacheStorageError(f"Cannot open record cache {self._db_path}: {e}") from e

    async def get(self, key: str) -> CachedRecordEntry | None:
        """Retrieve cache entry by key."""
        try:
            cursor = self._conn.execute(
                "SELECT data FROM record_cache WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise CacheStorageError(f"Failed to read cache entry {key}: {e}") from e
        if row is None:
            return None
        return _deserialize(key, row[0])

    async def get_batch(self, keys: list[str]) -> dict[str, CachedRecordEntry]:
        """Retrieve entries for ``keys`` with IN queries."""
        unique = list(dict.fromkeys(keys))
        found: dict[str, CachedRecordEntry] = {}
        try:
            for start in range(0, len(unique), _BATCH_SIZE):
                chunk = unique[start : start + _BATCH_SIZE]
                placeholders = ",".join("?" * len(chunk))
                cursor = self._conn.execute(
                    f"SELECT key, data FROM record_cache WHERE key IN ({placeholders})",  # noqa: S608
                    chunk,
                )
                for key, data in cursor.fetchall():
                    entry = _deserialize(key, data)
                    if entry is not None:
                        found[key] = entry
        except sqlite3.Error as e:
            raise CacheStorageError(f"Failed to batch-read cache entries: {e}") from e
        return found

    async def put(self, entry: CachedRecordEntry) -> None:
        """Store a cache entry (upsert)."""
        try:
            self._conn.execute(
                """INSERT OR REPLACE INTO record_cache
                   (key, source, record_id, user_id, data, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    entry.key,
                    entry.source,
                    entry.record_id,
                    entry.user_id,
                    entry.model_dump_json(),
                    entry.updated_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise CacheStorageError(f"Failed to write cache entry {entry.key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        try:
            self._conn.execute("DELETE FROM record_cache WHERE key = ?", (key,))
            self._conn.commit()
        except sqlite3.Error as e:
            raise CacheStorageError(f"Failed to delete cache entry {key}: {e}") from e

    async def delete_by_user_id(self, user_id: str) -> int:
        """Bulk delete through the user_id index."""
        try:
            cursor = self._conn.execute(
                "DELETE FROM record_cache WHERE user_id = ?", (user_id,)
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise CacheStorageError(f"Failed to clean up cache for user {user_id}: {e}") from e
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()


def _deserialize(key: str, data: str) -> CachedRecordEntry | None:
    try:
        return CachedRecordEntry.model_validate_json(data)
    except ValidationError as e:
        logger.warning("Failed to deserialize cache entry %s: %s", key, e)
        return None
