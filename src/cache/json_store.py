# src/cache/json_store.py — v2
"""JSON file-based record store (CACHE_BACKEND=json).

Stores each entry as an individual JSON file under CACHE_ROOT/records.
A per-user index under CACHE_ROOT/users lists the keys owned by each user
so that cleanup does not need to scan every entry.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from recordloader.cache.base_cache_store import BaseRecordStore
from recordloader.core.exceptions import CacheStorageError
from recordloader.core.models import CachedRecordEntry

logger = logging.getLogger(__name__)


class JsonRecordStore(BaseRecordStore):
    """File-based record store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._records = self._root / "records"
        self._users = self._root / "users"
        try:
            self._records.mkdir(parents=True, exist_ok=True)
            self._users.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheStorageError(f"Cannot create cache root {self._root}: {e}") from e

    async def get(self, key: str) -> CachedRecordEntry | None:
        """Retrieve cache entry by key."""
        path = self._entry_path(key)
        try:
            if not path.exists():
                return None
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheStorageError(f"Failed to read cache entry {key}: {e}") from e
        try:
            return CachedRecordEntry.model_validate_json(text)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", key, e)
            return None

    async def get_batch(self, keys: list[str]) -> dict[str, CachedRecordEntry]:
        """Retrieve all present entries for ``keys``."""
        found: dict[str, CachedRecordEntry] = {}
        for key in dict.fromkeys(keys):
            entry = await self.get(key)
            if entry is not None:
                found[key] = entry
        return found

    async def put(self, entry: CachedRecordEntry) -> None:
        """Store a cache entry (overwrites)."""
        try:
            previous = await self.get(entry.key)
            self._entry_path(entry.key).write_text(
                entry.model_dump_json(indent=2), encoding="utf-8"
            )
            if previous is not None and previous.user_id != entry.user_id:
                self._unindex(previous.user_id, entry.key)
            if entry.user_id is not None:
                keys = self._read_user_index(entry.user_id)
                if entry.key not in keys:
                    keys.append(entry.key)
                    self._write_user_index(entry.user_id, keys)
        except OSError as e:
            raise CacheStorageError(f"Failed to write cache entry {entry.key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Remove a cache entry."""
        entry = await self.get(key)
        path = self._entry_path(key)
        try:
            if path.exists():
                path.unlink()
            if entry is not None:
                self._unindex(entry.user_id, key)
        except OSError as e:
            raise CacheStorageError(f"Failed to delete cache entry {key}: {e}") from e

    async def delete_by_user_id(self, user_id: str) -> int:
        """Remove every entry listed in the user's index."""
        removed = 0
        try:
            for key in self._read_user_index(user_id):
                path = self._entry_path(key)
                if path.exists():
                    path.unlink()
                    removed += 1
            index_path = self._user_index_path(user_id)
            if index_path.exists():
                index_path.unlink()
        except OSError as e:
            raise CacheStorageError(f"Failed to clean up cache for user {user_id}: {e}") from e
        return removed

    def _unindex(self, user_id: str | None, key: str) -> None:
        if user_id is None:
            return
        keys = self._read_user_index(user_id)
        if key in keys:
            keys.remove(key)
            self._write_user_index(user_id, keys)

    def _read_user_index(self, user_id: str) -> list[str]:
        path = self._user_index_path(user_id)
        if not path.exists():
            return []
        try:
            return list(json.loads(path.read_text(encoding="utf-8")))
        except json.JSONDecodeError:
            logger.warning("Corrupt user index for %s, ignoring", user_id)
            return []

    def _write_user_index(self, user_id: str, keys: list[str]) -> None:
        self._user_index_path(user_id).write_text(json.dumps(keys), encoding="utf-8")

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._records / f"{safe_key}.json"

    def _user_index_path(self, user_id: str) -> Path:
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return self._users / f"{digest}.json"
