# src/retrieval/solr_retriever.py — v2
"""Live retrieval against a Solr-style JSON index over HTTP (httpx).

Records are fetched by identifier with a single select request per batch;
documents are hydrated through the record factory registry.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from recordloader.core.exceptions import LiveRetrievalError
from recordloader.core.models import ResolvedRecord
from recordloader.drivers.factory import RecordFactoryRegistry, RegistryError
from recordloader.retrieval.base_retriever import BaseLiveRetriever

logger = logging.getLogger(__name__)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_id_query(field: str, record_ids: list[str]) -> str:
    """Solr query matching any of ``record_ids`` in ``field``."""
    return f"{field}:({' OR '.join(_quote(i) for i in record_ids)})"


class SolrRetriever(BaseLiveRetriever):
    """Fetch records by id from ``{base_url}/{core}/select``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        factories: RecordFactoryRegistry,
        base_url: str = "http://localhost:8983/solr",
        core: str = "biblio",
        id_field: str = "id",
        previous_id_field: str = "previous_id_str_mv",
    ) -> None:
        self._client = client
        self._factories = factories
        self._select_url = f"{base_url.rstrip('/')}/{core}/select"
        self._id_field = id_field
        self._previous_id_field = previous_id_field

    async def retrieve(self, source: str, record_id: str) -> ResolvedRecord | None:
        records = await self.retrieve_batch(source, [record_id])
        for record in records:
            if record.unique_id == record_id:
                return record
        return records[0] if records else None

    async def retrieve_batch(self, source: str, record_ids: list[str]) -> list[ResolvedRecord]:
        if not record_ids:
            return []
        docs = await self._select(source, build_id_query(self._id_field, record_ids), len(record_ids))
        return self._hydrate(source, docs)

    async def retrieve_by_previous_ids(
        self, source: str, record_ids: list[str]
    ) -> list[ResolvedRecord]:
        """Find records whose previous identifier is one of ``record_ids``.

        The previous-id field is multi-valued, so each record is stamped with
        the requested id it matched. A record matching several requested ids
        is returned once per match.
        """
        if not record_ids:
            return []
        docs = await self._select(
            source, build_id_query(self._previous_id_field, record_ids), len(record_ids)
        )
        records: list[ResolvedRecord] = []
        for record in self._hydrate(source, docs):
            matched = [i for i in record_ids if i in self._previous_ids(record)]
            for n, previous_id in enumerate(matched or [record.previous_unique_id]):
                copy = record if n == 0 else record.model_copy(deep=True)
                copy.previous_unique_id = previous_id
                records.append(copy)
        return records

    def _previous_ids(self, record: ResolvedRecord) -> list[str]:
        value = record.raw_data.get(self._previous_id_field)
        if value is None:
            return []
        return [str(v) for v in value] if isinstance(value, list) else [str(value)]

    async def _select(self, source: str, query: str, rows: int) -> list[dict[str, Any]]:
        params = {"q": query, "rows": str(rows), "wt": "json"}
        try:
            response = await self._client.get(self._select_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise LiveRetrievalError(source, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise LiveRetrievalError(source, f"invalid JSON response: {e}") from e

        try:
            docs = payload["response"]["docs"]
        except (KeyError, TypeError) as e:
            raise LiveRetrievalError(source, "response has no documents section") from e
        if not isinstance(docs, list):
            raise LiveRetrievalError(source, f"documents section is {type(docs).__name__}, not a list")
        logger.debug("Solr returned %d docs for %s", len(docs), source)
        return docs

    def _hydrate(self, source: str, docs: list[dict[str, Any]]) -> list[ResolvedRecord]:
        records: list[ResolvedRecord] = []
        for doc in docs:
            try:
                records.append(self._factories.create(source, doc))
            except (TypeError, ValueError, RegistryError) as e:
                logger.warning("Skipping malformed %s document: %s", source, e)
        return records
