"""Decide whether a freshly built aggregate is inserted, skipped or replaced."""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel

from pci_repository.interfaces.store import AggregateStore
from pci_repository.models import RootEntity, Section

logger = logging.getLogger(__name__)


class ReconcileAction(str, Enum):
    inserted = "inserted"
    skipped = "skipped"
    replaced = "replaced"


class ReconcileOutcome(BaseModel):
    section: Section
    root_id: str
    action: ReconcileAction
    old_hash: str | None = None
    new_hash: str


class SectionReport(BaseModel):
    """Per-section tally of reconciliation outcomes."""

    section: Section
    inserted: int = 0
    skipped: int = 0
    replaced: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.skipped + self.replaced

    @property
    def written(self) -> int:
        return self.inserted + self.replaced

    def record(self, outcome: ReconcileOutcome) -> None:
        setattr(self, outcome.action.value, getattr(self, outcome.action.value) + 1)


class Reconciler:
    """Compare hashed roots with their persisted aggregates.

    Aggregates are written or skipped as a unit; nested collections are never
    merged element by element, so the stored hash always matches the stored
    content.
    """

    def __init__(self, store: AggregateStore) -> None:
        self._store = store

    async def reconcile(self, section: Section, root: RootEntity) -> ReconcileOutcome:
        if not root.hash:
            raise ValueError(f"{section.value} aggregate {root.id} has not been hashed")

        persisted = await self._store.get_aggregate(section, root.id)

        if persisted is None:
            await self._store.insert_aggregate(section, root)
            logger.debug("Inserted %s %s - %s", section.value, root.id, root.name)
            return ReconcileOutcome(
                section=section,
                root_id=root.id,
                action=ReconcileAction.inserted,
                new_hash=root.hash,
            )

        old_hash = persisted.hash
        if old_hash == root.hash:
            logger.debug("Unchanged %s %s (hash %s)", section.value, root.id, old_hash)
            return ReconcileOutcome(
                section=section,
                root_id=root.id,
                action=ReconcileAction.skipped,
                old_hash=old_hash,
                new_hash=root.hash,
            )

        # The stale copy is discarded, never patched
        del persisted
        await self._store.replace_aggregate(section, root)
        logger.debug(
            "Replaced %s %s (hash %s -> %s)", section.value, root.id, old_hash, root.hash
        )
        return ReconcileOutcome(
            section=section,
            root_id=root.id,
            action=ReconcileAction.replaced,
            old_hash=old_hash,
            new_hash=root.hash,
        )
