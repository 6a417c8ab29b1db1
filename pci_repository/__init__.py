"""PCI repository - ingest the PCI ID registry into an aggregate store."""

from pci_repository.config import RepositoryConfig, load_config
from pci_repository.errors import (
    FetchError,
    FormatError,
    GrammarViolation,
    PersistenceError,
    RepositoryError,
    RunInProgressError,
    VersionFormatError,
)
from pci_repository.ingest import Pipeline, RunReport, RunStatus
from pci_repository.models import (
    ChildEntity,
    DescendantEntity,
    RepositoryMarker,
    RootEntity,
    Section,
)
from pci_repository.sources import create_source
from pci_repository.storage import create_store

__version__ = "0.1.0"

__all__ = [
    "ChildEntity",
    "DescendantEntity",
    "FetchError",
    "FormatError",
    "GrammarViolation",
    "PersistenceError",
    "Pipeline",
    "RepositoryConfig",
    "RepositoryError",
    "RepositoryMarker",
    "RootEntity",
    "RunInProgressError",
    "RunReport",
    "RunStatus",
    "Section",
    "VersionFormatError",
    "create_source",
    "create_store",
    "load_config",
]
