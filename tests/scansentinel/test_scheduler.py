"""Unit tests for ScanScheduler."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from scansentinel.scheduler import ScanScheduler
from scansentinel.services import InvalidStateError, SchedulingError


async def _wait_until(predicate, interval: float = 0.005) -> None:
    while not predicate():
        await asyncio.sleep(interval)


@pytest.fixture
def recorder():
    """run_fn that records ids; ids in ``fail`` raise the mapped exception."""

    class _Recorder:
        def __init__(self) -> None:
            self.ran: list[uuid.UUID] = []
            self.fail: dict[uuid.UUID, Exception] = {}
            self.delay = 0.0
            self.active = 0
            self.max_active = 0

        async def __call__(self, scan_id: uuid.UUID) -> None:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            try:
                if self.delay:
                    await asyncio.sleep(self.delay)
                self.ran.append(scan_id)
                if scan_id in self.fail:
                    raise self.fail[scan_id]
            finally:
                self.active -= 1

    return _Recorder()


@pytest.mark.asyncio
async def test_submit_before_start_rejected(recorder):
    scheduler = ScanScheduler(recorder)
    with pytest.raises(SchedulingError, match="not running"):
        scheduler.submit(uuid.uuid4())


@pytest.mark.asyncio
async def test_runs_submitted_scans(recorder):
    scheduler = ScanScheduler(recorder, workers=2)
    await scheduler.start()
    try:
        ids = [uuid.uuid4() for _ in range(5)]
        for scan_id in ids:
            scheduler.submit(scan_id)
        await asyncio.wait_for(scheduler.join(), timeout=1.0)
        assert sorted(recorder.ran) == sorted(ids)
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_worker_count_bounds_concurrency(recorder):
    recorder.delay = 0.02
    scheduler = ScanScheduler(recorder, workers=2)
    await scheduler.start()
    try:
        for _ in range(6):
            scheduler.submit(uuid.uuid4())
        await asyncio.wait_for(scheduler.join(), timeout=2.0)
        assert recorder.max_active == 2
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_duplicate_submit_is_noop(recorder):
    recorder.delay = 0.01
    scheduler = ScanScheduler(recorder, workers=1)
    await scheduler.start()
    try:
        blocker, scan_id = uuid.uuid4(), uuid.uuid4()
        scheduler.submit(blocker)
        scheduler.submit(scan_id)
        scheduler.submit(scan_id)
        await asyncio.wait_for(scheduler.join(), timeout=1.0)
        assert recorder.ran.count(scan_id) == 1
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_queue_full(recorder):
    recorder.delay = 1.0
    scheduler = ScanScheduler(recorder, workers=1, queue_size=1)
    await scheduler.start()
    try:
        scheduler.submit(uuid.uuid4())
        await _wait_until(lambda: recorder.active == 1)
        scheduler.submit(uuid.uuid4())
        with pytest.raises(SchedulingError, match="queue is full"):
            scheduler.submit(uuid.uuid4())
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_failures_do_not_kill_workers(recorder):
    scheduler = ScanScheduler(recorder, workers=1)
    bad, skipped, good = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    recorder.fail[bad] = RuntimeError("boom")
    recorder.fail[skipped] = InvalidStateError("cannot start scan with status completed")
    await scheduler.start()
    try:
        for scan_id in (bad, skipped, good):
            scheduler.submit(scan_id)
        await asyncio.wait_for(scheduler.join(), timeout=1.0)
        assert recorder.ran == [bad, skipped, good]
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_sweep_on_start(recorder):
    pending = [uuid.uuid4(), uuid.uuid4()]

    async def sweep_fn():
        return pending

    scheduler = ScanScheduler(recorder, sweep_fn=sweep_fn, sweep_interval=100)
    await scheduler.start()
    try:
        await asyncio.wait_for(_wait_until(lambda: len(recorder.ran) == 2), timeout=1.0)
        assert sorted(recorder.ran) == sorted(pending)
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_sweep_error_logged_and_retried(recorder):
    calls = []

    async def sweep_fn():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("db down")
        return []

    scheduler = ScanScheduler(recorder, sweep_fn=sweep_fn, sweep_interval=0.01)
    await scheduler.start()
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 2), timeout=1.0)
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_rejects_new_work(recorder):
    scheduler = ScanScheduler(recorder)
    await scheduler.start()
    assert scheduler.running
    await scheduler.stop()

    assert not scheduler.running
    with pytest.raises(SchedulingError):
        scheduler.submit(uuid.uuid4())


def test_invalid_worker_count(recorder):
    with pytest.raises(ValueError):
        ScanScheduler(recorder, workers=0)
