# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for record cache policies, cacheable sources,
storage backends, live retrieval and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Record sources ===
    default_source: str = "Solr"
    source_aliases: dict[str, str] = {"Solr": "VuFind"}

    # === Record cache ===
    cache_backend: Literal["json", "sqlite", "redis"] = "sqlite"
    cache_root: Path = Path("~/.recordloader/cache")
    cache_redis_url: str = ""
    record_cache_sources: str = ""
    # Policy name -> comma-separated flags (see cache.policy.CachePolicy.parse)
    record_cache_policies: dict[str, str] = {
        "default": "primary,fallback,record_id,source",
        "favorite": "primary,fallback,record_id,source,user_id",
        "disabled": "disabled",
    }
    # Cache context -> policy name
    record_cache_contexts: dict[str, str] = {
        "Default": "default",
        "Favorite": "favorite",
        "Disabled": "disabled",
    }
    record_cache_default_context: str = "Default"

    # === Live retrieval ===
    retrieval_timeout_s: float = 10.0
    solr_url: str = "http://localhost:8983/solr"
    solr_core: str = "biblio"
    solr_id_field: str = "id"
    solr_previous_id_field: str = "previous_id_str_mv"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("retrieval_timeout_s")
    @classmethod
    def validate_retrieval_timeout(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("retrieval_timeout_s must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        from recordloader.cache.policy import CachePolicy

        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        for context, policy_name in self.record_cache_contexts.items():
            if policy_name not in self.record_cache_policies:
                errors.append(
                    f"Cache context {context!r} refers to unknown policy {policy_name!r}"
                )

        if self.record_cache_default_context not in self.record_cache_contexts:
            errors.append(
                f"RECORD_CACHE_DEFAULT_CONTEXT {self.record_cache_default_context!r} "
                "is not a configured cache context"
            )

        for name, flags in self.record_cache_policies.items():
            try:
                CachePolicy.parse(flags)
            except ValueError as exc:
                errors.append(f"Policy {name!r}: {exc}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def record_cache_sources_list(self) -> list[str]:
        """Parse comma-separated cacheable sources."""
        return [s.strip() for s in self.record_cache_sources.split(",") if s.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
