# src/api/facade.py — v2
"""Public API facade — single entry point for record resolution and caching.

Usage:
    from recordloader.api.facade import create_record_service
    service = create_record_service(settings)
    records = await service.load_batch(["Solr|123", "Solr|456"])
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING

from recordloader.cache.cache_factory import create_record_store
from recordloader.cache.policy import CONTEXT_DISABLED, CONTEXT_FAVORITE
from recordloader.cache.record_cache import RecordCache
from recordloader.config.settings import Settings
from recordloader.core.models import ResolvedRecord
from recordloader.drivers.factory import DefaultRecordFactory, RawData, RecordFactoryRegistry
from recordloader.loader.record_loader import ErrorReporter, RecordLoader
from recordloader.logging.context import set_request_context

if TYPE_CHECKING:
    import httpx

    from recordloader.cache.base_cache_store import BaseRecordStore
    from recordloader.retrieval.base_retriever import BaseLiveRetriever
    from recordloader.retrieval.fallback import FallbackLoaderRegistry

logger = logging.getLogger(__name__)


class RecordService:
    """Caller-facing operations: load, batch load, cache writes and cleanup."""

    def __init__(self, loader: RecordLoader, record_cache: RecordCache | None) -> None:
        self._loader = loader
        self._cache = record_cache

    @property
    def loader(self) -> RecordLoader:
        return self._loader

    @property
    def record_cache(self) -> RecordCache | None:
        return self._cache

    async def load(
        self,
        record_id: str,
        source: str | None = None,
        tolerate_missing: bool = False,
        user_id: str | None = None,
    ) -> ResolvedRecord:
        """Load one record; raises RecordMissingError unless tolerating gaps."""
        set_request_context(_request_id(), self._cache.context if self._cache else None)
        return await self._loader.load(record_id, source, tolerate_missing, user_id)

    async def load_batch(
        self,
        references: Iterable[object],
        user_id: str | None = None,
    ) -> list[ResolvedRecord]:
        """Load records in request order; gaps become Missing placeholders."""
        set_request_context(_request_id(), self._cache.context if self._cache else None)
        return await self._loader.load_batch(references, user_id=user_id)

    async def create_or_update(
        self,
        record_id: str,
        user_id: str | None,
        source: str,
        raw_data: RawData,
        session_id: str | None = None,
        resource_id: str | None = None,
    ) -> None:
        if self._cache is None:
            return
        await self._cache.create_or_update(
            record_id, user_id, source, raw_data, session_id, resource_id
        )

    async def cleanup(self, user_id: str) -> int:
        """Drop every cached record owned by ``user_id``."""
        if self._cache is None:
            return 0
        return await self._cache.cleanup(user_id)

    def set_policy(self, policy_name: str) -> None:
        if self._cache is not None:
            self._cache.set_policy(policy_name)

    def set_cache_context(self, context: str) -> None:
        self._loader.set_cache_context(context)

    async def refresh_cache(
        self,
        references: Iterable[object],
        user_id: str | None = None,
    ) -> int:
        """Fetch fresh copies of records and store them in the Favorite context.

        The cache is disabled while loading so that live versions are
        fetched instead of cached ones. Missing records are not stored.

        Returns:
            Number of records written.
        """
        if self._cache is None:
            return 0
        previous_context = self._cache.context
        self.set_cache_context(CONTEXT_DISABLED)
        try:
            records = await self._loader.load_batch(references, user_id=user_id)
        finally:
            self.set_cache_context(CONTEXT_FAVORITE)

        written = 0
        try:
            for record in records:
                if record.is_missing:
                    continue
                await self._cache.create_or_update(
                    record.unique_id, user_id, record.source, record.raw_data
                )
                written += 1
        finally:
            self.set_cache_context(previous_context)
        logger.info("Refreshed %d cached record(s)", written)
        return written


def create_record_service(
    settings: Settings | None = None,
    retriever: BaseLiveRetriever | None = None,
    factories: RecordFactoryRegistry | None = None,
    store: BaseRecordStore | None = None,
    fallback_loaders: FallbackLoaderRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
    error_reporter: ErrorReporter | None = None,
) -> RecordService:
    """Wire a RecordService from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        retriever: Live retrieval backend. Defaults to SolrRetriever.
        factories: Record factories. Defaults to one DefaultRecordFactory
            for every source.
        store: Record store. Defaults to the configured backend; no cache
            is built when no cacheable sources are configured.
        fallback_loaders: Optional per-source fallback loaders.
        http_client: httpx client for the default SolrRetriever.
        error_reporter: Callback for recovered backend failures.
    """
    settings = settings or Settings()

    if factories is None:
        factories = RecordFactoryRegistry(
            default=DefaultRecordFactory(
                id_field=settings.solr_id_field,
                previous_id_field=settings.solr_previous_id_field,
            )
        )

    if retriever is None:
        import httpx

        from recordloader.retrieval.solr_retriever import SolrRetriever

        retriever = SolrRetriever(
            client=http_client or httpx.AsyncClient(timeout=settings.retrieval_timeout_s),
            factories=factories,
            base_url=settings.solr_url,
            core=settings.solr_core,
            id_field=settings.solr_id_field,
            previous_id_field=settings.solr_previous_id_field,
        )

    record_cache: RecordCache | None = None
    sources = settings.record_cache_sources_list
    if store is not None or sources:
        record_cache = RecordCache(
            store=store or create_record_store(settings),
            factories=factories,
            cacheable_sources=sources,
            policies=settings.record_cache_policies,
            contexts=settings.record_cache_contexts,
            default_context=settings.record_cache_default_context,
            source_aliases=settings.source_aliases,
            default_source=settings.default_source,
        )
    else:
        logger.info("No cacheable sources configured; record cache disabled")

    loader = RecordLoader(
        retriever=retriever,
        factories=factories,
        record_cache=record_cache,
        fallback_loaders=fallback_loaders,
        default_source=settings.default_source,
        retrieval_timeout_s=settings.retrieval_timeout_s,
        error_reporter=error_reporter,
    )
    return RecordService(loader, record_cache)


def _request_id() -> str:
    return uuid.uuid4().hex[:12]
