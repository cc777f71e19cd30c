"""Preference and reputation persistence."""

from .store import (
    InMemoryPreferenceStore,
    JsonPreferenceStore,
    PreferenceStore,
    StoreReadError,
    seed_defaults,
)

__all__ = [
    "InMemoryPreferenceStore",
    "JsonPreferenceStore",
    "PreferenceStore",
    "StoreReadError",
    "seed_defaults",
]
