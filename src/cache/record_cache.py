# src/cache/record_cache.py — v2
"""Record cache: policy gating, key derivation and hydration on top of a store.

A source is only ever cached when it appears in the configured
cacheable-sources set. The active policy (selected by name or by cache
context) decides whether the cache is consulted before live retrieval
(primary), after it (fallback), both, or not at all.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from recordloader.cache.base_cache_store import BaseRecordStore
from recordloader.cache.keys import DEFAULT_SOURCE_ALIASES, compute_cache_key
from recordloader.cache.policy import CONTEXT_DEFAULT, CONTEXT_DISABLED, CachePolicy
from recordloader.core.models import CachedRecordEntry, IdentifierReference, ResolvedRecord
from recordloader.drivers.factory import RawData, RecordFactoryRegistry, encode_raw_data

logger = logging.getLogger(__name__)

DEFAULT_POLICIES: dict[str, str] = {
    "default": "primary,fallback,record_id,source",
    "disabled": "disabled",
}
DEFAULT_CONTEXTS: dict[str, str] = {
    CONTEXT_DEFAULT: "default",
    CONTEXT_DISABLED: "disabled",
}


class RecordCache:
    """Policy-aware record cache."""

    def __init__(
        self,
        store: BaseRecordStore,
        factories: RecordFactoryRegistry,
        cacheable_sources: Iterable[str] = (),
        policies: Mapping[str, str] | None = None,
        contexts: Mapping[str, str] | None = None,
        default_context: str = CONTEXT_DEFAULT,
        source_aliases: Mapping[str, str] | None = None,
        default_source: str = "Solr",
    ) -> None:
        self._store = store
        self._factories = factories
        self._cacheable_sources = set(cacheable_sources)
        self._policies = {
            name: CachePolicy.parse(flags)
            for name, flags in (policies or DEFAULT_POLICIES).items()
        }
        self._contexts = dict(contexts or DEFAULT_CONTEXTS)
        self._aliases = dict(DEFAULT_SOURCE_ALIASES if source_aliases is None else source_aliases)
        self._default_source = default_source
        self._policy_name = ""
        self._policy = CachePolicy.disabled_policy()
        self._context = ""
        self.set_context(default_context)

    # --- Configuration ---

    @property
    def policy(self) -> CachePolicy:
        return self._policy

    @property
    def policy_name(self) -> str:
        return self._policy_name

    @property
    def context(self) -> str:
        return self._context

    @property
    def cacheable_sources(self) -> frozenset[str]:
        return frozenset(self._cacheable_sources)

    def set_policy(self, policy_name: str) -> None:
        """Activate a named policy.

        Raises:
            ValueError: If no policy with that name is configured.
        """
        policy = self._policies.get(policy_name)
        if policy is None:
            raise ValueError(
                f"Unknown cache policy {policy_name!r}. "
                f"Configured: {', '.join(sorted(self._policies))}"
            )
        self._policy_name = policy_name
        self._policy = policy
        logger.debug("Record cache policy set to %s (%s)", policy_name, policy.to_flags())

    def set_context(self, context: str) -> None:
        """Select the policy configured for a cache context.

        The Disabled context always disables the cache. Unknown contexts
        fall back to the Default context's policy.
        """
        self._context = context
        if context == CONTEXT_DISABLED:
            self._policy_name = CONTEXT_DISABLED.lower()
            self._policy = CachePolicy.disabled_policy()
            return
        policy_name = self._contexts.get(context)
        if policy_name is None:
            logger.warning("Unknown cache context %r, using %s", context, CONTEXT_DEFAULT)
            policy_name = self._contexts.get(CONTEXT_DEFAULT, "default")
        self.set_policy(policy_name)

    # --- Policy gating ---

    def is_cacheable(self, source: str) -> bool:
        return source in self._cacheable_sources

    def is_primary(self, source: str) -> bool:
        """Cache is consulted before live retrieval for ``source``."""
        return self.is_cacheable(source) and not self._policy.disabled and self._policy.primary

    def is_fallback(self, source: str) -> bool:
        """Cache is consulted after live retrieval misses for ``source``."""
        return self.is_cacheable(source) and not self._policy.disabled and self._policy.fallback

    def compute_key(self, record_id: str, source: str, user_id: str | None = None) -> str:
        return compute_cache_key(record_id, source, user_id, self._policy, self._aliases)

    # --- Reads ---

    async def lookup(
        self,
        ids: str | Iterable[str | IdentifierReference | Mapping[str, object]],
        source: str | None = None,
        user_id: str | None = None,
    ) -> list[ResolvedRecord]:
        """Look up cached records.

        Args:
            ids: A single id, bare ids, or structured references.
            source: Source shared by bare ids (overrides structured sources).
            user_id: Owning user for user-scoped keys.

        Returns:
            Hydrated records for every hit, in request order. Entries whose
            source has no registered factory are skipped.

        Raises:
            CacheStorageError: On backend failure.
        """
        if self._policy.disabled:
            return []

        if isinstance(ids, str):
            ids = [ids]
        default = source or self._default_source
        refs = [IdentifierReference.parse(item, default) for item in ids]
        if source is not None:
            refs = [ref.model_copy(update={"source": source}) for ref in refs]

        keys = [self.compute_key(ref.id, ref.source, user_id) for ref in refs]
        if not keys:
            return []
        hits = await self._store.get_batch(keys)

        records: list[ResolvedRecord] = []
        seen: set[str] = set()
        for key, ref in zip(keys, refs):
            entry = hits.get(key)
            if entry is None or key in seen:
                continue
            seen.add(key)
            # Aliased sources share keys; the record belongs to the requested one.
            record = self._hydrate(entry, ref.source)
            if record is not None:
                records.append(record)
        logger.debug("Record cache lookup: %d/%d hits", len(records), len(set(keys)))
        return records

    def _hydrate(self, entry: CachedRecordEntry, source: str) -> ResolvedRecord | None:
        if not self._factories.has(source):
            return None
        try:
            return self._factories.create(source, entry.raw_data)
        except ValueError as e:
            logger.warning(
                "Skipping unreadable cached record %s:%s: %s",
                entry.source, entry.record_id, e,
            )
            return None

    # --- Writes ---

    async def create_or_update(
        self,
        record_id: str,
        user_id: str | None,
        source: str,
        raw_data: RawData,
        session_id: str | None = None,
        resource_id: str | None = None,
    ) -> None:
        """Insert or replace the cached copy of a record.

        Nothing is written when the source is not cacheable or the active
        policy is disabled.

        Raises:
            ValueError: On empty record id or source, or unserializable data.
            CacheStorageError: On backend failure.
        """
        if not record_id:
            raise ValueError("record_id must not be empty")
        if not source:
            raise ValueError("source must not be empty")
        try:
            payload = encode_raw_data(raw_data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Cannot serialize raw data for {source}:{record_id}: {e}") from e

        if not self.is_cacheable(source) or self._policy.disabled:
            logger.debug("Not caching %s:%s (source not cacheable or cache disabled)", source, record_id)
            return

        entry = CachedRecordEntry(
            key=self.compute_key(record_id, source, user_id),
            source=source,
            record_id=record_id,
            user_id=user_id,
            raw_data=payload,
            session_id=session_id,
            resource_id=resource_id,
        )
        await self._store.put(entry)

    async def cleanup(self, user_id: str) -> int:
        """Delete every cached row owned by ``user_id``."""
        if not user_id:
            raise ValueError("user_id must not be empty")
        removed = await self._store.delete_by_user_id(user_id)
        logger.info("Removed %d cached records for user %s", removed, user_id)
        return removed
