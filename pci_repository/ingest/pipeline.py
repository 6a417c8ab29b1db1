"""Pipeline driver: one full pass from fetched text to reconciled store."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from pci_repository.config.models import IngestConfig
from pci_repository.ingest.builder import build_trees, split_lines, split_sections
from pci_repository.ingest.grammar import HIERARCHIES, ScanResult, scan_section
from pci_repository.ingest.hasher import hash_tree
from pci_repository.ingest.reconciler import Reconciler, SectionReport
from pci_repository.ingest.version import DEFAULT_VERSION_LINE, check_version
from pci_repository.interfaces.source import TextSource
from pci_repository.interfaces.store import AggregateStore
from pci_repository.models import RepositoryMarker, Section

logger = logging.getLogger(__name__)

# Classes are reconciled before vendors
SECTION_ORDER = (Section.classes, Section.vendors)


class RunStatus(str, Enum):
    up_to_date = "up_to_date"
    completed = "completed"


class RunReport(BaseModel):
    """Summary of a single pipeline pass."""

    status: RunStatus
    version: date
    previous_version: date | None = None
    sections: list[SectionReport] = Field(default_factory=list)
    violations: int = 0
    dropped_lines: int = 0
    started_at: datetime
    finished_at: datetime

    @property
    def written(self) -> int:
        return sum(s.written for s in self.sections)


class Pipeline:
    """Fetch → version gate → validate → reconcile classes, vendors → marker.

    The repository marker is only written after both sections have been
    reconciled. A failure or cancellation part way leaves it untouched, so
    the next run reprocesses the same version; unchanged aggregates are then
    skipped by hash.
    """

    def __init__(
        self,
        source: TextSource,
        store: AggregateStore,
        ingest: IngestConfig | None = None,
        version_line: int = DEFAULT_VERSION_LINE,
    ) -> None:
        self._source = source
        self._store = store
        self._ingest = ingest or IngestConfig()
        self._version_line = version_line
        self._reconciler = Reconciler(store)

    async def run(self) -> RunReport:
        started_at = datetime.now(UTC)
        logger.info("Fetching registry from %s", self._source.location)
        lines = split_lines(await self._source.fetch())

        marker = await self._store.get_marker()
        previous = marker.version if marker is not None else None
        check = check_version(lines, previous, self._version_line)
        if not check.proceed:
            return RunReport(
                status=RunStatus.up_to_date,
                version=check.version,
                previous_version=previous,
                started_at=started_at,
                finished_at=datetime.now(UTC),
            )

        scans = self._validate(lines)

        reports: list[SectionReport] = []
        try:
            for section in SECTION_ORDER:
                reports.append(await self._reconcile_section(section, scans[section].lines))
        except asyncio.CancelledError:
            logger.warning("Run cancelled; repository version left at %s", previous)
            raise

        await self._store.save_marker(
            RepositoryMarker(version=check.version, last_update=datetime.now(UTC))
        )
        logger.info("Processing complete, updated version to %s", check.version)

        return RunReport(
            status=RunStatus.completed,
            version=check.version,
            previous_version=previous,
            sections=reports,
            violations=sum(len(s.violations) for s in scans.values()),
            dropped_lines=sum(s.dropped for s in scans.values()),
            started_at=started_at,
            finished_at=datetime.now(UTC),
        )

    def _validate(self, lines: list[str]) -> dict[Section, ScanResult]:
        """Check every record line before anything is parsed or written."""
        sections = split_sections(lines)
        logger.info(
            "Retrieved %d lines of devices and %d lines of classes",
            len(sections.vendors),
            len(sections.classes),
        )
        strict = self._ingest.validation == "strict"
        scans = {
            Section.vendors: scan_section(sections.vendors, HIERARCHIES[Section.vendors], strict),
            Section.classes: scan_section(sections.classes, HIERARCHIES[Section.classes], strict),
        }
        for section, scan in scans.items():
            for violation in scan.violations:
                logger.warning("Skipping invalid %s line: %s", section.value, violation)
            if scan.dropped:
                logger.warning(
                    "Dropped %d %s line(s) below invalid records", scan.dropped, section.value
                )
        return scans

    async def _reconcile_section(self, section: Section, lines: list[str]) -> SectionReport:
        report = SectionReport(section=section)
        hierarchy = HIERARCHIES[section]
        for root in build_trees(lines, hierarchy):
            hash_tree(root, self._ingest.hash_mode)
            report.record(await self._reconciler.reconcile(section, root))
        logger.info(
            "Reconciled %d %s: %d inserted, %d replaced, %d unchanged",
            report.total,
            section.value,
            report.inserted,
            report.replaced,
            report.skipped,
        )
        return report
