# tests/conftest.py — v2
"""Shared test fixtures for unit and integration tests.

Provides a stub live retriever, factory registries, record caches over a
temporary SQLite store, and raw record payloads. No network access.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from recordloader.cache.record_cache import RecordCache
from recordloader.cache.sqlite_store import SqliteRecordStore
from recordloader.core.exceptions import LiveRetrievalError
from recordloader.core.models import ResolvedRecord
from recordloader.drivers.factory import DefaultRecordFactory, RecordFactoryRegistry
from recordloader.retrieval.base_retriever import BaseLiveRetriever


class StubRetriever(BaseLiveRetriever):
    """In-memory live backend: source -> id -> raw document."""

    def __init__(
        self,
        documents: dict[str, dict[str, dict]] | None = None,
        factories: RecordFactoryRegistry | None = None,
        failing_sources: set[str] | None = None,
    ) -> None:
        self.documents = documents or {}
        self.factories = factories or RecordFactoryRegistry(default=DefaultRecordFactory())
        self.failing_sources = failing_sources or set()
        self.calls: list[tuple[str, str, list[str]]] = []

    async def retrieve(self, source: str, record_id: str) -> ResolvedRecord | None:
        self.calls.append(("retrieve", source, [record_id]))
        self._maybe_fail(source)
        doc = self.documents.get(source, {}).get(record_id)
        return None if doc is None else self.factories.create(source, doc)

    async def retrieve_batch(self, source: str, record_ids: list[str]) -> list[ResolvedRecord]:
        self.calls.append(("retrieve_batch", source, list(record_ids)))
        self._maybe_fail(source)
        docs = self.documents.get(source, {})
        return [self.factories.create(source, docs[i]) for i in record_ids if i in docs]

    def _maybe_fail(self, source: str) -> None:
        if source in self.failing_sources:
            raise LiveRetrievalError(source, "connection refused")


# === FIXTURES ===


@pytest.fixture
def factories() -> RecordFactoryRegistry:
    """Registry with a default factory for every source."""
    return RecordFactoryRegistry(default=DefaultRecordFactory())


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteRecordStore:
    store = SqliteRecordStore(db_path=tmp_path / "record_cache.db")
    yield store
    store.close()


@pytest.fixture
def record_cache(sqlite_store, factories) -> RecordCache:
    """Solr cacheable as primary + fallback; other sources uncached."""
    return RecordCache(
        store=sqlite_store,
        factories=factories,
        cacheable_sources=["Solr"],
        policies={
            "default": "primary,fallback,record_id,source",
            "primary_only": "primary,record_id,source",
            "fallback_only": "fallback,record_id,source",
            "favorite": "primary,fallback,record_id,source,user_id",
            "disabled": "disabled",
        },
        contexts={"Default": "default", "Favorite": "favorite", "Disabled": "disabled"},
    )


@pytest.fixture
def make_retriever(factories):
    """Build a StubRetriever sharing the test factory registry."""

    def _make(documents=None, failing_sources=None) -> StubRetriever:
        return StubRetriever(documents, factories, failing_sources)

    return _make
