# tests/unit/logging/test_unit_context.py — v2
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

import asyncio

import pytest

from recordloader.logging.context import (
    clear_context,
    get_context,
    set_request_context,
    set_source_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.source is None
        assert ctx.cache_context is None

    def test_set_request_context(self):
        set_request_context("req1", "Default")
        ctx = get_context()
        assert ctx.request_id == "req1"
        assert ctx.cache_context == "Default"

    def test_set_source_context(self):
        set_source_context("Solr")
        assert get_context().source == "Solr"

    def test_as_dict_filters_none(self):
        set_request_context("req1")
        d = get_context().as_dict()
        assert d == {"request_id": "req1"}

    def test_clear(self):
        set_request_context("req1", "Favorite")
        set_source_context("Solr")
        clear_context()
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.source is None
        assert ctx.cache_context is None

    @pytest.mark.asyncio
    async def test_source_is_task_local(self):
        seen: dict[str, str | None] = {}

        async def worker(source: str) -> None:
            set_source_context(source)
            await asyncio.sleep(0)
            seen[source] = get_context().source

        await asyncio.gather(worker("Solr"), worker("Summon"))
        assert seen == {"Solr": "Solr", "Summon": "Summon"}
        assert get_context().source is None
