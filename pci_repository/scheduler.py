"""Periodic pipeline runs, serialized by the store's run lock."""

from __future__ import annotations

import asyncio
import logging
import os
import socket
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from pci_repository.errors import RepositoryError
from pci_repository.ingest.pipeline import Pipeline, RunReport
from pci_repository.interfaces.store import AggregateStore

logger = logging.getLogger(__name__)


def default_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


async def locked_run(
    pipeline: Pipeline, store: AggregateStore, owner: str | None = None
) -> RunReport:
    """Run *pipeline* while holding the store-wide run lock."""
    async with store.run_lock(owner or default_owner()):
        return await pipeline.run()


class Scheduler:
    """Invoke a run every *interval_seconds*, like a single-instance timer trigger.

    A failed or timed-out run is logged and the schedule carries on; the next
    tick retries the same registry version because the marker was not updated.
    """

    def __init__(
        self,
        run: Callable[[], Awaitable[RunReport]],
        interval_seconds: int,
        run_on_startup: bool = True,
        run_timeout: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._run = run
        self._interval = interval_seconds
        self._run_on_startup = run_on_startup
        self._run_timeout = run_timeout
        self._sleep = sleep

    async def tick(self) -> RunReport | None:
        """Execute one run, returning its report or None if it failed."""
        logger.info("Scheduled run started at %s", datetime.now(UTC).isoformat())
        try:
            if self._run_timeout is not None:
                return await asyncio.wait_for(self._run(), self._run_timeout)
            return await self._run()
        except TimeoutError:
            logger.error("Scheduled run timed out after %ss", self._run_timeout)
        except RepositoryError as e:
            logger.error("Scheduled run failed: %s", e)
        return None

    async def serve(self, max_runs: int | None = None) -> list[RunReport | None]:
        """Loop forever (or for *max_runs* ticks) and return the tick results."""
        results: list[RunReport | None] = []
        if not self._run_on_startup:
            await self._sleep(self._interval)
        while True:
            results.append(await self.tick())
            if max_runs is not None and len(results) >= max_runs:
                return results
            next_run = datetime.now(UTC) + timedelta(seconds=self._interval)
            logger.info("Next scheduled run at %s", next_run.isoformat())
            await self._sleep(self._interval)
