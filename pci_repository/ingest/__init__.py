"""Ingestion pipeline for the PCI ID registry."""

from pci_repository.ingest.builder import build_trees, split_lines, split_sections
from pci_repository.ingest.chunker import chunk
from pci_repository.ingest.grammar import CLASSES, HIERARCHIES, VENDORS, Hierarchy, scan_section
from pci_repository.ingest.hasher import compute_hash, hash_tree
from pci_repository.ingest.pipeline import Pipeline, RunReport, RunStatus
from pci_repository.ingest.reconciler import (
    ReconcileAction,
    ReconcileOutcome,
    Reconciler,
    SectionReport,
)
from pci_repository.ingest.version import VersionCheck, check_version, extract_version

__all__ = [
    "CLASSES",
    "HIERARCHIES",
    "Hierarchy",
    "Pipeline",
    "ReconcileAction",
    "ReconcileOutcome",
    "Reconciler",
    "RunReport",
    "RunStatus",
    "SectionReport",
    "VENDORS",
    "VersionCheck",
    "build_trees",
    "check_version",
    "chunk",
    "compute_hash",
    "extract_version",
    "hash_tree",
    "scan_section",
    "split_lines",
    "split_sections",
]
