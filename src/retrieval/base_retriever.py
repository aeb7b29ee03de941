# src/retrieval/base_retriever.py — v1
"""Abstract live retrieval interface (remote search index lookups by id)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from recordloader.core.models import ResolvedRecord


class BaseLiveRetriever(ABC):
    """Fetches records from the live backend for a source.

    Implementations raise LiveRetrievalError on transport or payload errors.
    A record that simply does not exist is not an error.
    """

    @abstractmethod
    async def retrieve(self, source: str, record_id: str) -> ResolvedRecord | None:
        """Fetch one record, or None when it does not exist."""

    @abstractmethod
    async def retrieve_batch(self, source: str, record_ids: list[str]) -> list[ResolvedRecord]:
        """Fetch several records. Absent ids are simply missing from the result."""
