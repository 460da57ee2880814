"""Shared helpers: logging setup and numeric utilities."""
