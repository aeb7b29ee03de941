# src/logging/context.py — v2
"""Contextual logging support — attach request_id, source and cache context
to log records.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per resolution request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_source: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "source", default=None
)
_cache_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_context", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    source: str | None = None
    cache_context: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        source=_source.get(),
        cache_context=_cache_context.get(),
    )


def set_request_context(request_id: str, cache_context: str | None = None) -> None:
    """Set request-level context (called once per resolution call)."""
    _request_id.set(request_id)
    _cache_context.set(cache_context)


def set_source_context(source: str) -> None:
    """Set the record source being resolved (per-source task)."""
    _source.set(source)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _source.set(None)
    _cache_context.set(None)
