"""Durable snapshot storage."""

from cosmicmind.storage.continuity import SCHEMA_VERSION, ContinuityStore

__all__ = ["ContinuityStore", "SCHEMA_VERSION"]
