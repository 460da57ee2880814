"""Pydantic v2 data models shared across packages."""
