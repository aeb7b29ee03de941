# src/__init__.py — v1
"""Record resolution and caching layer."""
