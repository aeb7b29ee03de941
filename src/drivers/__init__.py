# src/drivers/__init__.py — v1
