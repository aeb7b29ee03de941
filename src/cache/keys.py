# src/cache/keys.py — v1
"""Cache key derivation for record cache entries.

The key is a SHA-256 digest over the JSON form of the components selected
by the active policy. Changing the selected components changes every key,
so existing rows written under another policy are no longer reachable.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping

from recordloader.cache.policy import CachePolicy

DEFAULT_SOURCE_ALIASES: dict[str, str] = {"Solr": "VuFind"}


def normalize_source(source: str, aliases: Mapping[str, str] | None = None) -> str:
    """Map a source alias to its canonical name."""
    table = DEFAULT_SOURCE_ALIASES if aliases is None else aliases
    return table.get(source, source)


def compute_cache_key(
    record_id: str,
    source: str,
    user_id: str | None,
    policy: CachePolicy,
    aliases: Mapping[str, str] | None = None,
) -> str:
    """Compute a stable cache key for (record_id, source, user_id).

    Args:
        record_id: Record identifier.
        source: Record source (normalized through ``aliases``).
        user_id: Owning user, only used when the policy includes it.
        policy: Active cache policy selecting key components.
        aliases: Source alias table. Defaults to ``Solr -> VuFind``.

    Returns:
        64-character hex digest.
    """
    components: dict[str, str | None] = {}
    if policy.include_record_id:
        components["recordId"] = record_id
    if policy.include_source:
        components["source"] = normalize_source(source, aliases)
    if policy.include_user_id:
        components["userId"] = user_id

    payload = json.dumps(components, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
