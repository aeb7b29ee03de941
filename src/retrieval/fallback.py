# src/retrieval/fallback.py — v1
"""Per-source fallback loaders.

A fallback loader gets a second chance at ids that live retrieval could
not find, typically by searching for records whose previous identifier
matches (ids reassigned between harvest cycles).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from recordloader.core.models import ResolvedRecord
from recordloader.retrieval.solr_retriever import SolrRetriever


class BaseFallbackLoader(ABC):
    """Loads records for ids the primary retrieval missed."""

    @abstractmethod
    async def load(self, record_ids: list[str]) -> list[ResolvedRecord]:
        """Return whatever records can be found for ``record_ids``."""


class PreviousIdFallbackLoader(BaseFallbackLoader):
    """Looks records up by their previous identifier in the Solr index."""

    def __init__(self, source: str, retriever: SolrRetriever) -> None:
        self._source = source
        self._retriever = retriever

    async def load(self, record_ids: list[str]) -> list[ResolvedRecord]:
        return await self._retriever.retrieve_by_previous_ids(self._source, record_ids)


class FallbackLoaderRegistry:
    """Source name -> fallback loader."""

    def __init__(self, loaders: dict[str, BaseFallbackLoader] | None = None) -> None:
        self._loaders: dict[str, BaseFallbackLoader] = dict(loaders or {})

    def register(self, source: str, loader: BaseFallbackLoader) -> None:
        self._loaders[source] = loader

    def has(self, source: str) -> bool:
        return source in self._loaders

    def get(self, source: str) -> BaseFallbackLoader | None:
        return self._loaders.get(source)
