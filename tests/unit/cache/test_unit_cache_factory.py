# tests/unit/cache/test_cache_factory.py — v4
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from recordloader.cache.cache_factory import create_record_store
from recordloader.cache.json_store import JsonRecordStore
from recordloader.cache.sqlite_store import SqliteRecordStore
from recordloader.config.settings import ConfigurationError, Settings


class TestCreateRecordStore:
    def test_sqlite_backend(self, tmp_path):
        s = Settings(_env_file=None, cache_backend="sqlite", cache_root=tmp_path)
        store = create_record_store(s)
        assert isinstance(store, SqliteRecordStore)
        assert (tmp_path / "record_cache.db").exists()
        store.close()

    def test_json_backend(self, tmp_path):
        s = Settings(_env_file=None, cache_backend="json", cache_root=tmp_path)
        store = create_record_store(s)
        assert isinstance(store, JsonRecordStore)

    def test_redis_missing_url(self):
        with pytest.raises(ConfigurationError, match="CACHE_REDIS_URL"):
            s = Settings(_env_file=None, cache_backend="redis", cache_redis_url="")
            create_record_store(s)

    def test_unsupported_backend(self):
        """Settings validation rejects invalid backends before factory is reached."""
        with pytest.raises((ValueError, Exception)):
            s = Settings(_env_file=None, cache_backend="nonexistent")
            create_record_store(s)
