"""Tests for scheduled and lock-guarded pipeline runs."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from pci_repository.errors import FetchError, RunInProgressError
from pci_repository.ingest.pipeline import Pipeline, RunStatus
from pci_repository.scheduler import Scheduler, default_owner, locked_run
from pci_repository.storage.sqlite_store import SQLiteStore


class FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _runner(results):
    """Return an async callable yielding *results* in turn; exceptions are raised."""
    it = iter(results)

    async def run():
        item = next(it)
        if isinstance(item, BaseException):
            raise item
        return item

    return run


# ── locked_run ─────────────────────────────────────────────────────


class TestLockedRun:
    @pytest.mark.asyncio
    async def test_runs_pipeline_under_lock(self, store, static_source, sample_registry):
        report = await locked_run(Pipeline(static_source(sample_registry), store), store, "me:1")
        assert report.status is RunStatus.completed
        # Lock is free again afterwards
        async with store.run_lock("me:2"):
            pass

    @pytest.mark.asyncio
    async def test_concurrent_run_is_rejected(self, store, static_source, sample_registry):
        source = static_source(sample_registry)
        async with store.run_lock("other:1"):
            with pytest.raises(RunInProgressError):
                await locked_run(Pipeline(source, store), store, "me:1")
        assert source.fetches == 0
        assert await store.get_marker() is None

    def test_default_owner_has_pid(self):
        host, _, pid = default_owner().rpartition(":")
        assert host
        assert pid.isdigit()


# ── Scheduler ──────────────────────────────────────────────────────


class TestScheduler:
    @pytest.mark.asyncio
    async def test_tick_returns_report(self, store, static_source, sample_registry):
        pipeline = Pipeline(static_source(sample_registry), store)
        scheduler = Scheduler(pipeline.run, interval_seconds=60)
        report = await scheduler.tick()
        assert report.version == date(2024, 1, 1)

    @pytest.mark.asyncio
    async def test_failed_tick_is_logged_not_raised(self, caplog):
        scheduler = Scheduler(_runner([FetchError("memory://pci.ids", "boom")]), interval_seconds=60)
        with caplog.at_level("ERROR", logger="pci_repository"):
            assert await scheduler.tick() is None
        assert "Scheduled run failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        scheduler = Scheduler(_runner([KeyError("bug")]), interval_seconds=60)
        with pytest.raises(KeyError):
            await scheduler.tick()

    @pytest.mark.asyncio
    async def test_tick_times_out(self, caplog):
        async def slow():
            await asyncio.sleep(10)

        scheduler = Scheduler(slow, interval_seconds=60, run_timeout=0.01)
        with caplog.at_level("ERROR", logger="pci_repository"):
            assert await scheduler.tick() is None
        assert "timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_serve_runs_until_max_runs(self):
        sleep = FakeSleep()
        scheduler = Scheduler(
            _runner(["first", FetchError("x", "down"), "third"]),
            interval_seconds=3600,
            sleep=sleep,
        )
        results = await scheduler.serve(max_runs=3)
        assert results == ["first", None, "third"]
        assert sleep.calls == [3600, 3600]

    @pytest.mark.asyncio
    async def test_serve_waits_first_when_not_run_on_startup(self):
        sleep = FakeSleep()
        scheduler = Scheduler(
            _runner(["only"]), interval_seconds=5, run_on_startup=False, sleep=sleep
        )
        assert await scheduler.serve(max_runs=1) == ["only"]
        assert sleep.calls == [5]

    @pytest.mark.asyncio
    async def test_failed_run_is_retried_next_tick(self, store, static_source, sample_registry):
        source = static_source(sample_registry)
        calls = {"n": 0}
        pipeline = Pipeline(source, store)

        async def flaky():
            calls["n"] += 1
            if calls["n"] == 1:
                raise FetchError(source.location, "temporarily unavailable")
            return await pipeline.run()

        results = await Scheduler(flaky, interval_seconds=1, sleep=FakeSleep()).serve(max_runs=3)

        assert results[0] is None
        assert results[1].status is RunStatus.completed
        assert results[2].status is RunStatus.up_to_date

    @pytest.mark.asyncio
    async def test_corrupt_store_row_does_not_stop_serving(
        self, tmp_path, static_source, sample_registry
    ):
        store = SQLiteStore(db_path=str(tmp_path / "repository.db"))
        store._conn.execute(
            "INSERT INTO repository (singleton, version, last_update) VALUES (1, 'soon', 'later')"
        )
        pipeline = Pipeline(static_source(sample_registry), store)
        scheduler = Scheduler(
            lambda: locked_run(pipeline, store, "me:1"), interval_seconds=1, sleep=FakeSleep()
        )
        try:
            results = await scheduler.serve(max_runs=2)
        finally:
            store.close()
        assert results == [None, None]
