"""In-process AggregateStore, used for dry runs and tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from pci_repository.errors import PersistenceError, RunInProgressError
from pci_repository.models import RepositoryMarker, RootEntity, Section


class MemoryStore:
    """Dict-backed store. Aggregates are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._aggregates: dict[tuple[Section, str], RootEntity] = {}
        self._marker: RepositoryMarker | None = None
        self._lock_holder: tuple[str, str] | None = None

    async def get_aggregate(self, section: Section, root_id: str) -> RootEntity | None:
        stored = self._aggregates.get((section, root_id))
        return stored.model_copy(deep=True) if stored is not None else None

    async def insert_aggregate(self, section: Section, root: RootEntity) -> None:
        key = (section, root.id)
        if key in self._aggregates:
            raise PersistenceError(
                "insert", KeyError(f"{section.value} aggregate {root.id} already exists")
            )
        self._aggregates[key] = root.model_copy(deep=True)

    async def replace_aggregate(self, section: Section, root: RootEntity) -> None:
        self._aggregates.pop((section, root.id), None)
        self._aggregates[(section, root.id)] = root.model_copy(deep=True)

    async def list_aggregates(self, section: Section) -> list[RootEntity]:
        return [
            root.model_copy(deep=True)
            for (s, _), root in sorted(self._aggregates.items(), key=lambda kv: kv[0][1])
            if s is section
        ]

    async def count_aggregates(self, section: Section) -> int:
        return sum(1 for s, _ in self._aggregates if s is section)

    async def get_marker(self) -> RepositoryMarker | None:
        return self._marker.model_copy() if self._marker is not None else None

    async def save_marker(self, marker: RepositoryMarker) -> None:
        self._marker = marker.model_copy()

    @asynccontextmanager
    async def run_lock(self, owner: str) -> AsyncIterator[None]:
        if self._lock_holder is not None:
            raise RunInProgressError(*self._lock_holder)
        self._lock_holder = (owner, datetime.now(UTC).isoformat())
        try:
            yield
        finally:
            self._lock_holder = None

    def close(self) -> None:
        pass
