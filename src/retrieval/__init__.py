# src/retrieval/__init__.py — v1
