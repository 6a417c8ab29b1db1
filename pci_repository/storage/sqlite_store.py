"""AggregateStore implementation backed by a local SQLite database."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TypeVar

from pci_repository.errors import PersistenceError, RunInProgressError
from pci_repository.models import RepositoryMarker, RootEntity, Section

T = TypeVar("T")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS aggregates (
    section TEXT NOT NULL,
    id TEXT NOT NULL,
    hash TEXT NOT NULL,
    document TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (section, id)
);
CREATE TABLE IF NOT EXISTS repository (
    singleton INTEGER PRIMARY KEY CHECK (singleton = 1),
    version TEXT NOT NULL,
    last_update TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS run_lock (
    name TEXT PRIMARY KEY,
    owner TEXT NOT NULL,
    acquired_at TEXT NOT NULL
);
"""

_LOCK_NAME = "ingest"


class SQLiteStore:
    """AggregateStore using SQLite with WAL mode.

    Each aggregate is one JSON document keyed by ``(section, id)``, so a
    root and its whole subtree are always written in a single statement.
    The blocking sqlite3 calls run in a worker thread via asyncio.to_thread().
    """

    def __init__(
        self,
        db_path: str = ".pci_repository/repository.db",
        lock_ttl: int = 6 * 3600,
    ) -> None:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = str(path)
        self.lock_ttl = lock_ttl
        # isolation_level=None => autocommit mode, giving us manual
        # transaction control for replace and the run lock.
        self._conn = sqlite3.connect(
            self.db_path, isolation_level=None, timeout=5, check_same_thread=False
        )
        self._mutex = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    # -- helpers ---------------------------------------------------------------

    def _now_iso(self) -> str:
        return datetime.now(UTC).isoformat()

    def _call(self, operation: str, fn: Callable[..., T], *args: object) -> T:
        # ValueError includes pydantic ValidationError from undecodable stored rows
        with self._mutex:
            try:
                return fn(*args)
            except (sqlite3.Error, ValueError) as e:
                if self._conn.in_transaction:
                    self._conn.rollback()
                raise PersistenceError(operation, e) from e

    async def _run(self, operation: str, fn: Callable[..., T], *args: object) -> T:
        return await asyncio.to_thread(self._call, operation, fn, *args)

    def close(self) -> None:
        self._conn.close()

    # -- aggregates ------------------------------------------------------------

    def _get(self, section: Section, root_id: str) -> RootEntity | None:
        row = self._conn.execute(
            "SELECT document FROM aggregates WHERE section = ? AND id = ?",
            (section.value, root_id),
        ).fetchone()
        if row is None:
            return None
        return RootEntity.model_validate_json(row[0])

    def _insert(self, section: Section, root: RootEntity) -> None:
        self._conn.execute(
            "INSERT INTO aggregates (section, id, hash, document, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (section.value, root.id, root.hash, root.model_dump_json(), self._now_iso()),
        )

    def _replace(self, section: Section, root: RootEntity) -> None:
        cursor = self._conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        cursor.execute(
            "DELETE FROM aggregates WHERE section = ? AND id = ?",
            (section.value, root.id),
        )
        self._insert(section, root)
        cursor.execute("COMMIT")

    def _list(self, section: Section) -> list[RootEntity]:
        rows = self._conn.execute(
            "SELECT document FROM aggregates WHERE section = ? ORDER BY id ASC",
            (section.value,),
        ).fetchall()
        return [RootEntity.model_validate_json(r[0]) for r in rows]

    def _count(self, section: Section) -> int:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM aggregates WHERE section = ?", (section.value,)
        ).fetchone()
        return row[0]

    async def get_aggregate(self, section: Section, root_id: str) -> RootEntity | None:
        return await self._run("get", self._get, section, root_id)

    async def insert_aggregate(self, section: Section, root: RootEntity) -> None:
        await self._run("insert", self._insert, section, root)

    async def replace_aggregate(self, section: Section, root: RootEntity) -> None:
        """Delete the stored aggregate and insert *root* in one transaction."""
        await self._run("replace", self._replace, section, root)

    async def list_aggregates(self, section: Section) -> list[RootEntity]:
        return await self._run("list", self._list, section)

    async def count_aggregates(self, section: Section) -> int:
        return await self._run("count", self._count, section)

    # -- repository marker -----------------------------------------------------

    def _get_marker(self) -> RepositoryMarker | None:
        row = self._conn.execute(
            "SELECT version, last_update FROM repository WHERE singleton = 1"
        ).fetchone()
        if row is None:
            return None
        return RepositoryMarker(
            version=date.fromisoformat(row[0]),
            last_update=datetime.fromisoformat(row[1]),
        )

    def _save_marker(self, marker: RepositoryMarker) -> None:
        self._conn.execute(
            "INSERT INTO repository (singleton, version, last_update) VALUES (1, ?, ?) "
            "ON CONFLICT(singleton) DO UPDATE SET "
            "version = excluded.version, last_update = excluded.last_update",
            (marker.version.isoformat(), marker.last_update.isoformat()),
        )

    async def get_marker(self) -> RepositoryMarker | None:
        return await self._run("get marker", self._get_marker)

    async def save_marker(self, marker: RepositoryMarker) -> None:
        await self._run("save marker", self._save_marker, marker)

    # -- run lock --------------------------------------------------------------

    def _acquire_lock(self, owner: str) -> None:
        """Claim the run lock, taking over a claim older than ``lock_ttl``.

        BEGIN IMMEDIATE holds the write lock across the select-then-insert so
        two processes cannot both claim it.
        """
        cursor = self._conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        row = cursor.execute(
            "SELECT owner, acquired_at FROM run_lock WHERE name = ?", (_LOCK_NAME,)
        ).fetchone()
        if row is not None:
            age = datetime.now(UTC) - datetime.fromisoformat(row[1])
            if age.total_seconds() < self.lock_ttl:
                cursor.execute("COMMIT")
                raise RunInProgressError(row[0], row[1])
        cursor.execute(
            "INSERT OR REPLACE INTO run_lock (name, owner, acquired_at) VALUES (?, ?, ?)",
            (_LOCK_NAME, owner, self._now_iso()),
        )
        cursor.execute("COMMIT")

    def _release_lock(self, owner: str) -> None:
        self._conn.execute(
            "DELETE FROM run_lock WHERE name = ? AND owner = ?", (_LOCK_NAME, owner)
        )

    @asynccontextmanager
    async def run_lock(self, owner: str) -> AsyncIterator[None]:
        """Hold the store-wide run lock for the duration of the block."""
        await self._run("acquire lock", self._acquire_lock, owner)
        try:
            yield
        finally:
            await self._run("release lock", self._release_lock, owner)
