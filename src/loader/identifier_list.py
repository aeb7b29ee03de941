# src/loader/identifier_list.py — v1
"""Request-scoped index of requested (source, id) references.

Normalizes mixed reference forms, groups ids by source so each source can
be resolved with one batch call, and maps resolved records back to every
position they occupied in the original request.
"""

from __future__ import annotations

from collections.abc import Iterable

from recordloader.core.models import IdentifierReference, ResolvedRecord


class IdentifierList:
    """Ordered, position-tracking list of identifier references."""

    def __init__(self, references: Iterable[object], default_source: str = "Solr") -> None:
        self._references: list[IdentifierReference] = []
        # source -> id -> original positions (duplicates keep every position)
        self._by_source: dict[str, dict[str, list[int]]] = {}

        for position, value in enumerate(references):
            ref = IdentifierReference.parse(value, default_source)
            self._references.append(ref)
            self._by_source.setdefault(ref.source, {}).setdefault(ref.id, []).append(position)

    def __len__(self) -> int:
        return len(self._references)

    def __getitem__(self, position: int) -> IdentifierReference:
        return self._references[position]

    def get_all(self) -> list[IdentifierReference]:
        return list(self._references)

    def get_ids_by_source(self) -> dict[str, list[str]]:
        """Distinct requested ids per source, in first-seen order."""
        return {source: list(ids) for source, ids in self._by_source.items()}

    def get_record_positions(self, record: ResolvedRecord) -> list[int]:
        """Every original position ``record`` should fill.

        The previous identifier is matched before the current one: when a
        request names both the old and the new id of the same record, the
        old-id slot must not be taken over by the new-id match.
        """
        ids = self._by_source.get(record.source)
        if not ids:
            return []

        positions: list[int] = []
        previous_id = record.previous_unique_id
        if previous_id is not None and previous_id != record.unique_id:
            positions.extend(ids.get(previous_id, []))
        for position in ids.get(record.unique_id, []):
            if position not in positions:
                positions.append(position)
        return positions
