"""Collaborator interfaces used by the ingestion pipeline."""

from pci_repository.interfaces.source import TextSource
from pci_repository.interfaces.store import AggregateStore

__all__ = [
    "AggregateStore",
    "TextSource",
]
