"""Aggregate store interface."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol, runtime_checkable

from pci_repository.models import RepositoryMarker, RootEntity, Section


@runtime_checkable
class AggregateStore(Protocol):
    """Keyed persistence of whole aggregates plus the repository marker.

    Aggregates are addressed by ``(section, root id)`` and are always read and
    written as a unit. Failures surface as ``PersistenceError``.
    """

    async def get_aggregate(self, section: Section, root_id: str) -> RootEntity | None: ...

    async def insert_aggregate(self, section: Section, root: RootEntity) -> None: ...

    async def replace_aggregate(self, section: Section, root: RootEntity) -> None: ...

    async def list_aggregates(self, section: Section) -> list[RootEntity]: ...

    async def count_aggregates(self, section: Section) -> int: ...

    async def get_marker(self) -> RepositoryMarker | None: ...

    async def save_marker(self, marker: RepositoryMarker) -> None: ...

    def run_lock(self, owner: str) -> AbstractAsyncContextManager[None]: ...

    def close(self) -> None: ...
