"""Persistent store for projects, reports, overviews, history and suggestions."""

from typing import Optional

from config import Settings, settings as default_settings

from .base import ProjectRecord, ValidationStore
from .json_store import JsonFileStore
from .memory_store import InMemoryStore


def create_store(settings: Optional[Settings] = None) -> ValidationStore:
    """Build the store backend named by settings.store_backend (memory or json)."""
    active = settings or default_settings
    backend = active.store_backend.lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "json":
        return JsonFileStore(active.get_store_path())
    raise ValueError(f"Unknown store backend: {active.store_backend}. Available: memory, json")


__all__ = [
    "ProjectRecord",
    "ValidationStore",
    "InMemoryStore",
    "JsonFileStore",
    "create_store",
]
