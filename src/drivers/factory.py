# src/drivers/factory.py — v1
"""Record factories: turn raw stored data into typed record objects.

One factory per record source, selected through a source-keyed registry
built at startup. The "Missing" factory builds placeholders for records
that could not be resolved.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from recordloader.core.models import (
    MISSING_DRIVER,
    IdentifierReference,
    MissingRecord,
    ResolvedRecord,
)

logger = logging.getLogger(__name__)

RawData = bytes | str | Mapping[str, Any]


class RegistryError(Exception):
    """Raised when a factory lookup fails."""


def decode_raw_data(raw_data: RawData) -> dict[str, Any]:
    """Decode cached bytes/str JSON or pass a mapping through."""
    if isinstance(raw_data, Mapping):
        return dict(raw_data)
    if isinstance(raw_data, bytes):
        raw_data = raw_data.decode("utf-8")
    decoded = json.loads(raw_data)
    if not isinstance(decoded, dict):
        raise ValueError(f"Raw record data must be a JSON object, got {type(decoded).__name__}")
    return decoded


def encode_raw_data(raw_data: RawData) -> bytes:
    """Serialize raw record data to bytes for storage."""
    if isinstance(raw_data, bytes):
        return raw_data
    if isinstance(raw_data, str):
        return raw_data.encode("utf-8")
    return json.dumps(dict(raw_data), sort_keys=True, default=str).encode("utf-8")


class RecordFactory(ABC):
    """Builds a record object for one source."""

    @abstractmethod
    def create(self, source: str, raw_data: RawData) -> ResolvedRecord:
        """Hydrate a record from raw data."""


class DefaultRecordFactory(RecordFactory):
    """Factory for index documents with an id field and optional previous id."""

    def __init__(
        self,
        id_field: str = "id",
        previous_id_field: str | None = "previous_id_str_mv",
    ) -> None:
        self._id_field = id_field
        self._previous_id_field = previous_id_field

    def create(self, source: str, raw_data: RawData) -> ResolvedRecord:
        data = decode_raw_data(raw_data)
        if self._id_field not in data:
            raise ValueError(f"Record data for {source} has no {self._id_field!r} field")
        return ResolvedRecord(
            unique_id=str(data[self._id_field]),
            source=source,
            raw_data=data,
            previous_unique_id=self._previous_id(data),
        )

    def _previous_id(self, data: dict[str, Any]) -> str | None:
        if not self._previous_id_field:
            return None
        value = data.get(self._previous_id_field)
        # Multi-valued index fields: the first value is the most recent id.
        if isinstance(value, list):
            value = value[0] if value else None
        return str(value) if value not in (None, "") else None


class MissingRecordFactory(RecordFactory):
    """Builds placeholders; ``source`` is the requested source, not "Missing"."""

    def create(self, source: str, raw_data: RawData) -> MissingRecord:
        data = decode_raw_data(raw_data)
        return MissingRecord(
            unique_id=str(data.get("id", "")),
            source=source,
            raw_data=data,
        )


class RecordFactoryRegistry:
    """Source name -> RecordFactory."""

    def __init__(
        self,
        factories: Mapping[str, RecordFactory] | None = None,
        default: RecordFactory | None = None,
    ) -> None:
        self._factories: dict[str, RecordFactory] = dict(factories or {})
        self._factories.setdefault(MISSING_DRIVER, MissingRecordFactory())
        self._default = default

    def register(self, source: str, factory: RecordFactory) -> None:
        if source in self._factories:
            logger.warning("Overwriting record factory for source: %s", source)
        self._factories[source] = factory

    def has(self, source: str) -> bool:
        return source in self._factories or self._default is not None

    def get(self, source: str) -> RecordFactory | None:
        """Factory for ``source``, the default factory, or None."""
        return self._factories.get(source, self._default)

    def get_or_raise(self, source: str) -> RecordFactory:
        factory = self.get(source)
        if factory is None:
            raise RegistryError(f"No record factory registered for source {source!r}")
        return factory

    def create(self, source: str, raw_data: RawData) -> ResolvedRecord:
        return self.get_or_raise(source).create(source, raw_data)

    def build_missing(self, reference: IdentifierReference) -> MissingRecord:
        """Placeholder carrying the reference's id, source and extra fields."""
        fields = dict(reference.extra_fields)
        fields["id"] = reference.id
        record = self._factories[MISSING_DRIVER].create(reference.source, fields)
        if not isinstance(record, MissingRecord):
            raise RegistryError("Missing record factory must build MissingRecord instances")
        return record
