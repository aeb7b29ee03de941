# tests/unit/cache/test_unit_policy.py — v1
"""Tests for cache/policy.py — CachePolicy parsing."""

from __future__ import annotations

import pytest

from recordloader.cache.policy import CachePolicy


class TestCachePolicyParse:
    def test_primary_and_fallback_are_independent(self):
        p = CachePolicy.parse("primary")
        assert p.primary is True
        assert p.fallback is False
        f = CachePolicy.parse("fallback")
        assert f.primary is False
        assert f.fallback is True
        both = CachePolicy.parse("primary,fallback")
        assert both.primary and both.fallback

    def test_key_components_default_to_record_id_and_source(self):
        p = CachePolicy.parse("primary")
        assert p.include_record_id is True
        assert p.include_source is True
        assert p.include_user_id is False

    def test_explicit_key_components(self):
        p = CachePolicy.parse("fallback,record_id,user_id")
        assert p.include_record_id is True
        assert p.include_source is False
        assert p.include_user_id is True

    def test_disabled(self):
        p = CachePolicy.parse("disabled")
        assert p.disabled is True
        assert p.is_enabled is False

    def test_whitespace_and_case(self):
        p = CachePolicy.parse(" Primary , SOURCE ")
        assert p.primary is True
        assert p.include_source is True
        assert p.include_record_id is False

    def test_unknown_flag(self):
        with pytest.raises(ValueError, match="Unknown cache policy flag"):
            CachePolicy.parse("primary,sometimes")

    def test_disabled_with_mode_rejected(self):
        with pytest.raises(ValueError, match="disabled"):
            CachePolicy.parse("disabled,primary")

    def test_to_flags_round_trip(self):
        p = CachePolicy.parse("primary,fallback,record_id,source,user_id")
        assert CachePolicy.parse(p.to_flags()) == p
        assert CachePolicy.disabled_policy().to_flags() == "disabled"
