"""Aggregate stores for the ingested registry."""

from __future__ import annotations

from pci_repository.config.models import StoreConfig
from pci_repository.interfaces.store import AggregateStore
from pci_repository.storage.memory_store import MemoryStore
from pci_repository.storage.sqlite_store import SQLiteStore


def create_store(config: StoreConfig) -> AggregateStore:
    """Create the configured aggregate store."""
    if config.backend == "memory":
        return MemoryStore()
    return SQLiteStore(db_path=config.path, lock_ttl=config.lock_ttl)


__all__ = [
    "AggregateStore",
    "MemoryStore",
    "SQLiteStore",
    "create_store",
]
