# tests/unit/cache/test_unit_record_cache.py — v2
"""Tests for cache/record_cache.py — policy gating, lookup, writes, cleanup."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from recordloader.cache.base_cache_store import BaseRecordStore
from recordloader.cache.record_cache import RecordCache
from recordloader.core.models import IdentifierReference


def _raw(record_id: str) -> bytes:
    return json.dumps({"id": record_id, "title": f"Title {record_id}"}).encode("utf-8")


class TestPolicyGating:
    def test_primary_and_fallback_for_cacheable_source(self, record_cache):
        assert record_cache.is_primary("Solr") is True
        assert record_cache.is_fallback("Solr") is True

    def test_uncacheable_source_never_cached(self, record_cache):
        for policy in ["default", "primary_only", "fallback_only", "favorite"]:
            record_cache.set_policy(policy)
            assert record_cache.is_primary("Summon") is False
            assert record_cache.is_fallback("Summon") is False

    def test_primary_only(self, record_cache):
        record_cache.set_policy("primary_only")
        assert record_cache.is_primary("Solr") is True
        assert record_cache.is_fallback("Solr") is False

    def test_fallback_only(self, record_cache):
        record_cache.set_policy("fallback_only")
        assert record_cache.is_primary("Solr") is False
        assert record_cache.is_fallback("Solr") is True

    def test_unknown_policy(self, record_cache):
        with pytest.raises(ValueError, match="Unknown cache policy"):
            record_cache.set_policy("nope")

    def test_disabled_context(self, record_cache):
        record_cache.set_context("Disabled")
        assert record_cache.policy.disabled is True
        assert record_cache.is_primary("Solr") is False
        assert record_cache.is_fallback("Solr") is False

    def test_favorite_context_includes_user(self, record_cache):
        record_cache.set_context("Favorite")
        assert record_cache.context == "Favorite"
        assert record_cache.policy_name == "favorite"
        assert record_cache.policy.include_user_id is True

    def test_unknown_context_uses_default(self, record_cache):
        record_cache.set_context("Bogus")
        assert record_cache.policy_name == "default"


class TestLookup:
    @pytest.mark.asyncio
    async def test_lookup_hit_and_miss(self, record_cache):
        await record_cache.create_or_update("A", None, "Solr", _raw("A"))
        records = await record_cache.lookup(["A", "B"], "Solr")
        assert [r.unique_id for r in records] == ["A"]
        assert records[0].source == "Solr"
        assert records[0].raw_data["title"] == "Title A"

    @pytest.mark.asyncio
    async def test_lookup_single_id(self, record_cache):
        await record_cache.create_or_update("A", None, "Solr", _raw("A"))
        records = await record_cache.lookup("A", "Solr")
        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_lookup_structured_references(self, record_cache):
        await record_cache.create_or_update("A", None, "Solr", _raw("A"))
        records = await record_cache.lookup(
            [IdentifierReference(source="Solr", id="A"), "Solr|B"]
        )
        assert [r.unique_id for r in records] == ["A"]

    @pytest.mark.asyncio
    async def test_lookup_user_scoped(self, record_cache):
        record_cache.set_context("Favorite")
        await record_cache.create_or_update("A", "u1", "Solr", _raw("A"))
        assert len(await record_cache.lookup(["A"], "Solr", user_id="u1")) == 1
        assert await record_cache.lookup(["A"], "Solr", user_id="u2") == []

    @pytest.mark.asyncio
    async def test_lookup_skips_unknown_source(self, sqlite_store):
        from recordloader.drivers.factory import DefaultRecordFactory, RecordFactoryRegistry

        registry = RecordFactoryRegistry({"Solr": DefaultRecordFactory()})
        cache = RecordCache(store=sqlite_store, factories=registry, cacheable_sources=["Solr", "EDS"])
        await cache.create_or_update("A", None, "EDS", _raw("A"))
        assert await cache.lookup(["A"], "EDS") == []

    @pytest.mark.asyncio
    async def test_aliased_row_takes_requested_source(self, sqlite_store, factories):
        cache = RecordCache(store=sqlite_store, factories=factories, cacheable_sources=["Solr", "VuFind"])
        await cache.create_or_update("A", None, "VuFind", _raw("A"))
        records = await cache.lookup(["A"], "Solr")
        assert [(r.source, r.unique_id) for r in records] == [("Solr", "A")]

    @pytest.mark.asyncio
    async def test_disabled_short_circuits_storage(self, factories):
        store = MagicMock(spec=BaseRecordStore)
        store.get_batch = AsyncMock(return_value={})
        store.get = AsyncMock(return_value=None)
        cache = RecordCache(store=store, factories=factories, cacheable_sources=["Solr"])
        cache.set_context("Disabled")
        assert await cache.lookup(["A", "B"], "Solr") == []
        assert store.get_batch.call_count == 0
        assert store.get.call_count == 0

    @pytest.mark.asyncio
    async def test_single_batch_read(self, factories):
        store = MagicMock(spec=BaseRecordStore)
        store.get_batch = AsyncMock(return_value={})
        cache = RecordCache(store=store, factories=factories, cacheable_sources=["Solr"])
        await cache.lookup(["A", "B", "C"], "Solr")
        assert store.get_batch.call_count == 1
        assert len(store.get_batch.call_args.args[0]) == 3


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_or_update_is_idempotent(self, record_cache, sqlite_store):
        await record_cache.create_or_update("A", None, "Solr", {"id": "A", "title": "v1"})
        await record_cache.create_or_update("A", None, "Solr", {"id": "A", "title": "v2"})
        key = record_cache.compute_key("A", "Solr")
        found = await sqlite_store.get_batch([key])
        assert len(found) == 1
        assert json.loads(found[key].raw_data)["title"] == "v2"

    @pytest.mark.asyncio
    async def test_uncacheable_source_not_written(self, record_cache, sqlite_store):
        await record_cache.create_or_update("A", None, "Summon", _raw("A"))
        key = record_cache.compute_key("A", "Summon")
        assert await sqlite_store.get(key) is None

    @pytest.mark.asyncio
    async def test_uncacheable_source_still_validated(self, record_cache):
        with pytest.raises(ValueError, match="record_id"):
            await record_cache.create_or_update("", None, "Summon", _raw("A"))

    @pytest.mark.asyncio
    async def test_empty_source_rejected(self, record_cache):
        with pytest.raises(ValueError, match="source"):
            await record_cache.create_or_update("A", None, "", _raw("A"))

    @pytest.mark.asyncio
    async def test_cleanup_removes_user_rows(self, record_cache):
        record_cache.set_context("Favorite")
        await record_cache.create_or_update("A", "u1", "Solr", _raw("A"))
        await record_cache.create_or_update("B", "u1", "Solr", _raw("B"))
        await record_cache.create_or_update("A", "u2", "Solr", _raw("A"))
        assert await record_cache.cleanup("u1") == 2
        assert await record_cache.lookup(["A", "B"], "Solr", user_id="u1") == []
        assert len(await record_cache.lookup(["A"], "Solr", user_id="u2")) == 1

    @pytest.mark.asyncio
    async def test_cleanup_requires_user(self, record_cache):
        with pytest.raises(ValueError):
            await record_cache.cleanup("")
