# src/cache/policy.py — v1
"""Record cache policy: operating mode and cache-key composition flags.

A policy is parsed from a comma-separated flag string, e.g.
"primary,fallback,record_id,source". Known flags:

  disabled    cache neither read nor written
  primary     consult cache before live retrieval
  fallback    consult cache after live retrieval misses
  record_id   include the record id in the cache key
  source      include the record source in the cache key
  user_id     include the user id in the cache key
"""

from __future__ import annotations

from dataclasses import dataclass

CONTEXT_DEFAULT = "Default"
CONTEXT_FAVORITE = "Favorite"
CONTEXT_DISABLED = "Disabled"

_FLAG_FIELDS = {
    "disabled": "disabled",
    "primary": "primary",
    "fallback": "fallback",
    "record_id": "include_record_id",
    "source": "include_source",
    "user_id": "include_user_id",
}


@dataclass(frozen=True)
class CachePolicy:
    """Typed flag-set describing how a cache context behaves."""

    disabled: bool = False
    primary: bool = False
    fallback: bool = False
    include_record_id: bool = True
    include_source: bool = True
    include_user_id: bool = False

    @classmethod
    def parse(cls, flags: str) -> CachePolicy:
        """Build a policy from a comma-separated flag string.

        Key-composition flags default to record_id + source when the string
        names none of them.

        Raises:
            ValueError: On unknown flags or a disabled policy with modes set.
        """
        names = [f.strip().lower() for f in flags.split(",") if f.strip()]
        unknown = [n for n in names if n not in _FLAG_FIELDS]
        if unknown:
            raise ValueError(f"Unknown cache policy flag(s): {', '.join(unknown)}")

        if "disabled" in names:
            if "primary" in names or "fallback" in names:
                raise ValueError("'disabled' cannot be combined with primary/fallback")
            return cls.disabled_policy()

        key_flags = {"record_id", "source", "user_id"}
        values: dict[str, bool] = {"primary": "primary" in names, "fallback": "fallback" in names}
        if key_flags.intersection(names):
            for flag in key_flags:
                values[_FLAG_FIELDS[flag]] = flag in names
        return cls(**values)

    @classmethod
    def disabled_policy(cls) -> CachePolicy:
        return cls(disabled=True)

    @property
    def is_enabled(self) -> bool:
        return not self.disabled and (self.primary or self.fallback)

    def to_flags(self) -> str:
        """Inverse of parse()."""
        if self.disabled:
            return "disabled"
        return ",".join(
            flag for flag, field_name in _FLAG_FIELDS.items()
            if flag != "disabled" and getattr(self, field_name)
        )
