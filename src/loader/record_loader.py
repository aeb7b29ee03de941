# src/loader/record_loader.py — v2
"""Record loader: single and batch record resolution.

Single loads resolve in a fixed order:
  1. record cache, if it is primary for the source
  2. live retrieval
  3. record cache, if it is fallback for the source
  4. per-source fallback loader, if one is registered
Batches run the fallback loader before the fallback cache so that ids
recovered through a previous identifier are served fresh.
Anything still unresolved becomes a Missing placeholder (batch, or single
loads that tolerate gaps) or a RecordMissingError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from recordloader.cache.record_cache import RecordCache
from recordloader.core.exceptions import (
    CacheStorageError,
    LiveRetrievalError,
    RecordMissingError,
)
from recordloader.core.models import IdentifierReference, ResolvedRecord
from recordloader.drivers.factory import RecordFactoryRegistry
from recordloader.loader.identifier_list import IdentifierList
from recordloader.logging.context import set_source_context
from recordloader.retrieval.base_retriever import BaseLiveRetriever
from recordloader.retrieval.fallback import FallbackLoaderRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorReporter = Callable[[str, Exception], None]


def _log_error(message: str, error: Exception) -> None:
    logger.warning("%s: %s", message, error)


class RecordLoader:
    """Turns (source, id) references into record objects."""

    def __init__(
        self,
        retriever: BaseLiveRetriever,
        factories: RecordFactoryRegistry,
        record_cache: RecordCache | None = None,
        fallback_loaders: FallbackLoaderRegistry | None = None,
        default_source: str = "Solr",
        retrieval_timeout_s: float = 10.0,
        error_reporter: ErrorReporter | None = None,
    ) -> None:
        self._retriever = retriever
        self._factories = factories
        self._record_cache = record_cache
        self._fallback_loaders = fallback_loaders or FallbackLoaderRegistry()
        self._default_source = default_source
        self._timeout = retrieval_timeout_s
        self._report = error_reporter or _log_error

    @property
    def record_cache(self) -> RecordCache | None:
        return self._record_cache

    def set_cache_context(self, context: str) -> None:
        """Pass a cache context (e.g. "Favorite", "Disabled") to the cache."""
        if self._record_cache is not None:
            self._record_cache.set_context(context)

    # --- Single record ---

    async def load(
        self,
        record_id: str | None,
        source: str | None = None,
        tolerate_missing: bool = False,
        user_id: str | None = None,
    ) -> ResolvedRecord:
        """Load one record.

        Args:
            record_id: Record identifier. Empty ids are never found.
            source: Record source. Defaults to the configured default source.
            tolerate_missing: Return a Missing placeholder instead of raising.
            user_id: Owning user for user-scoped cache keys.

        Raises:
            RecordMissingError: Record not found and gaps are not tolerated.
            LiveRetrievalError: Live retrieval failed, nothing else could
                serve the record and gaps are not tolerated.
            CacheStorageError: The fallback cache failed, no fallback loader
                is registered for the source and gaps are not tolerated.
        """
        source = source or self._default_source
        live_error: LiveRetrievalError | None = None

        if record_id:
            cache = self._record_cache

            if cache is not None and cache.is_primary(source):
                try:
                    found = await cache.lookup(record_id, source, user_id)
                except CacheStorageError as e:
                    self._report(f"Primary cache lookup failed for {source}:{record_id}", e)
                    found = []
                if found:
                    return found[0]

            try:
                record = await self._bounded(source, self._retriever.retrieve(source, record_id))
            except LiveRetrievalError as e:
                self._report(f"Live retrieval failed for {source}:{record_id}", e)
                live_error = e
                record = None
            if record is not None:
                return record

            has_fallback_loader = self._fallback_loaders.has(source)

            if cache is not None and cache.is_fallback(source):
                try:
                    found = await cache.lookup(record_id, source, user_id)
                except CacheStorageError as e:
                    if not tolerate_missing and not has_fallback_loader:
                        raise
                    self._report(f"Fallback cache lookup failed for {source}:{record_id}", e)
                    found = []
                if found:
                    found[0].extra_details["cached_record"] = True
                    return found[0]

            if has_fallback_loader:
                fallback = self._fallback_loaders.get(source)
                try:
                    records = await self._bounded(source, fallback.load([record_id]))
                except LiveRetrievalError as e:
                    self._report(f"Fallback loader failed for {source}:{record_id}", e)
                    live_error = live_error or e
                    records = []
                if len(records) == 1:
                    return records[0]

        if tolerate_missing:
            return self._factories.build_missing(
                IdentifierReference(source=source, id=record_id or "")
            )
        if live_error is not None:
            raise live_error
        raise RecordMissingError(source, record_id or "")

    # --- Batches ---

    async def load_batch_for_source(
        self,
        record_ids: Iterable[str],
        source: str | None = None,
        tolerate_backend_exceptions: bool = True,
        user_id: str | None = None,
    ) -> list[ResolvedRecord]:
        """Load a batch of records from one source.

        Returns live/fallback-loader records first, then cached records.
        Ids that cannot be resolved are absent; no placeholders are built.

        Raises:
            LiveRetrievalError, CacheStorageError: Only when
                ``tolerate_backend_exceptions`` is False.
        """
        source = source or self._default_source
        pending = _Checklist(i for i in record_ids if i)
        cache = self._record_cache

        cached: list[ResolvedRecord] = []
        if cache is not None and cache.is_primary(source) and pending:
            try:
                cached = await cache.lookup(pending.unchecked(), source, user_id)
            except CacheStorageError as e:
                if not tolerate_backend_exceptions:
                    raise
                self._report(f"Primary cache lookup failed for {source}", e)
            for record in cached:
                pending.check_record(record)

        results: list[ResolvedRecord] = []
        if pending:
            try:
                results = await self._bounded(
                    source, self._retriever.retrieve_batch(source, pending.unchecked())
                )
            except LiveRetrievalError as e:
                if not tolerate_backend_exceptions:
                    raise
                self._report(f"Exception when trying to retrieve records from {source}", e)
            for record in results:
                pending.check_record(record)

        if pending and self._fallback_loaders.has(source):
            fallback = self._fallback_loaders.get(source)
            recovered: list[ResolvedRecord] = []
            try:
                recovered = await self._bounded(source, fallback.load(pending.unchecked()))
            except LiveRetrievalError as e:
                if not tolerate_backend_exceptions:
                    raise
                self._report(f"Exception when trying to retrieve fallback records from {source}", e)
            for record in recovered:
                results.append(record)
                pending.check_record(record)

        if pending and cache is not None and cache.is_fallback(source):
            fallback_cached: list[ResolvedRecord] = []
            try:
                fallback_cached = await cache.lookup(pending.unchecked(), source, user_id)
            except CacheStorageError as e:
                if not tolerate_backend_exceptions:
                    raise
                self._report(f"Fallback cache lookup failed for {source}", e)
            for record in fallback_cached:
                record.extra_details["cached_record"] = True
                pending.check_record(record)
            cached.extend(fallback_cached)

        if pending:
            logger.debug("%d record(s) unresolved for %s", len(pending), source)
        return results + cached

    async def load_batch(
        self,
        references: Iterable[object],
        tolerate_backend_exceptions: bool = True,
        user_id: str | None = None,
    ) -> list[ResolvedRecord]:
        """Load records for mixed references, in request order.

        The result always has one entry per input reference; unresolved
        positions hold Missing placeholders built from the reference
        (including its extra fields).
        """
        id_list = IdentifierList(references, default_source=self._default_source)
        slots: list[ResolvedRecord | None] = [None] * len(id_list)

        async def resolve(source: str, record_ids: list[str]) -> None:
            set_source_context(source)
            records = await self.load_batch_for_source(
                record_ids, source, tolerate_backend_exceptions, user_id
            )
            for record in records:
                for n, position in enumerate(id_list.get_record_positions(record)):
                    slots[position] = record if n == 0 else record.model_copy(deep=True)

        await asyncio.gather(
            *(resolve(source, ids) for source, ids in id_list.get_ids_by_source().items())
        )

        output: list[ResolvedRecord] = []
        for position, record in enumerate(slots):
            if record is None:
                logger.debug("No record for %s, using placeholder", id_list[position].as_string())
                record = self._factories.build_missing(id_list[position])
            output.append(record)
        return output

    async def _bounded(self, source: str, call: Awaitable[T]) -> T:
        """Await a live backend call with the retrieval timeout."""
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise LiveRetrievalError(source, f"timed out after {self._timeout}s") from e


class _Checklist:
    """Ordered set of ids still awaiting a record."""

    def __init__(self, ids: Iterable[str]) -> None:
        self._unchecked = dict.fromkeys(ids)

    def __len__(self) -> int:
        return len(self._unchecked)

    def unchecked(self) -> list[str]:
        return list(self._unchecked)

    def check_record(self, record: ResolvedRecord) -> None:
        if record.unique_id in self._unchecked:
            del self._unchecked[record.unique_id]
        elif record.previous_unique_id in self._unchecked:
            del self._unchecked[record.previous_unique_id]
