# src/core/models.py — v2
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

MISSING_DRIVER = "Missing"


# === IDENTIFIERS ===


class IdentifierReference(BaseModel):
    """A requested (source, id) pair, optionally with placeholder fields."""

    source: str
    id: str
    extra_fields: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse(cls, value: object, default_source: str) -> IdentifierReference:
        """Normalize a reference given as model, mapping or "source|id" string.

        A string without "|" uses ``default_source``. Only the first "|"
        separates source from id, so ids may themselves contain pipes.
        """
        if isinstance(value, IdentifierReference):
            return value
        if isinstance(value, str):
            source, sep, record_id = value.partition("|")
            if not sep:
                return cls(source=default_source, id=value)
            return cls(source=source, id=record_id)
        if isinstance(value, Mapping):
            return cls(
                source=str(value.get("source") or default_source),
                id=str(value.get("id", "")),
                extra_fields=dict(value.get("extra_fields") or {}),
            )
        raise TypeError(f"Unsupported identifier reference: {value!r}")

    def as_string(self) -> str:
        return f"{self.source}|{self.id}"


# === CACHE ===


class CachedRecordEntry(BaseModel):
    """Single row of the record cache."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    key: str
    source: str
    record_id: str
    user_id: str | None = None
    raw_data: bytes
    session_id: str | None = None
    resource_id: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# === RECORDS ===


class ResolvedRecord(BaseModel):
    """Hydrated record returned to callers."""

    driver: ClassVar[str] = "Default"

    unique_id: str
    source: str
    raw_data: dict[str, Any] = Field(default_factory=dict)
    previous_unique_id: str | None = None
    extra_details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_missing(self) -> bool:
        return False

    @property
    def title(self) -> str | None:
        """Title from the raw data; placeholders carry the caller-supplied one."""
        value = self.raw_data.get("title")
        return str(value) if value is not None else None


class MissingRecord(ResolvedRecord):
    """Placeholder for a record that could not be resolved."""

    driver: ClassVar[str] = MISSING_DRIVER

    @property
    def is_missing(self) -> bool:
        return True
