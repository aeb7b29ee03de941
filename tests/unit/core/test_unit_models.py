# tests/unit/core/test_unit_models.py — v2
"""Tests for core/models.py — shared Pydantic models.

Also covers version.py import validation.
"""

from __future__ import annotations

import pytest

from recordloader.core.models import (
    MISSING_DRIVER,
    CachedRecordEntry,
    IdentifierReference,
    MissingRecord,
    ResolvedRecord,
)


class TestIdentifierReference:
    def test_parse_pipe_string(self):
        ref = IdentifierReference.parse("Summon|abc", "Solr")
        assert ref.source == "Summon"
        assert ref.id == "abc"

    def test_parse_bare_id_uses_default_source(self):
        ref = IdentifierReference.parse("abc", "Solr")
        assert ref.source == "Solr"
        assert ref.id == "abc"

    def test_parse_splits_on_first_pipe_only(self):
        ref = IdentifierReference.parse("Solr|a|b", "Solr")
        assert ref.id == "a|b"

    def test_parse_mapping(self):
        ref = IdentifierReference.parse(
            {"source": "EDS", "id": "x1", "extra_fields": {"title": "Lost"}}, "Solr"
        )
        assert ref.source == "EDS"
        assert ref.extra_fields == {"title": "Lost"}

    def test_parse_mapping_without_source(self):
        ref = IdentifierReference.parse({"id": "x1"}, "Solr")
        assert ref.source == "Solr"

    def test_parse_model_passthrough(self):
        original = IdentifierReference(source="Solr", id="1")
        assert IdentifierReference.parse(original, "Other") is original

    def test_parse_rejects_other_types(self):
        with pytest.raises(TypeError):
            IdentifierReference.parse(42, "Solr")

    def test_as_string(self):
        assert IdentifierReference(source="Solr", id="1").as_string() == "Solr|1"


class TestCachedRecordEntry:
    def test_json_round_trip_keeps_bytes(self):
        entry = CachedRecordEntry(
            key="k", source="Solr", record_id="1", raw_data=b'{"id": "1", "x": "\xc3\xa9"}'
        )
        restored = CachedRecordEntry.model_validate_json(entry.model_dump_json())
        assert restored.raw_data == entry.raw_data
        assert restored.updated_at == entry.updated_at

    def test_optional_fields_default_none(self):
        entry = CachedRecordEntry(key="k", source="Solr", record_id="1", raw_data=b"{}")
        assert entry.user_id is None
        assert entry.session_id is None
        assert entry.resource_id is None


class TestRecords:
    def test_resolved_record(self):
        record = ResolvedRecord(unique_id="1", source="Solr", raw_data={"id": "1"})
        assert record.is_missing is False
        assert record.driver == "Default"
        assert record.previous_unique_id is None
        assert record.extra_details == {}
        assert record.title is None

    def test_title_from_raw_data(self):
        assert ResolvedRecord(unique_id="1", source="Solr", raw_data={"title": 7}).title == "7"

    def test_missing_record(self):
        record = MissingRecord(unique_id="1", source="Solr", raw_data={"id": "1", "title": "Gone"})
        assert record.is_missing is True
        assert record.driver == MISSING_DRIVER
        assert record.title == "Gone"

    def test_missing_record_without_title(self):
        assert MissingRecord(unique_id="1", source="Solr").title is None

    def test_extra_details_not_shared(self):
        a = ResolvedRecord(unique_id="1", source="Solr")
        b = ResolvedRecord(unique_id="2", source="Solr")
        a.extra_details["cached_record"] = True
        assert b.extra_details == {}


class TestVersion:
    def test_version_importable(self):
        from recordloader.version import __version__

        assert isinstance(__version__, str)
        assert __version__.count(".") == 2
