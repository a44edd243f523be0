"""Scheduler — bounded worker pool that executes queued scans."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable

import structlog

from scansentinel.services import InvalidStateError, NotFoundError, SchedulingError

logger = structlog.get_logger(__name__)

DEFAULT_WORKERS = 2
DEFAULT_QUEUE_SIZE = 100
DEFAULT_SWEEP_INTERVAL = 300.0


class ScanScheduler:
    """Queue scan ids and run them on a fixed number of worker tasks.

    Every submitted scan is awaited by a worker and its outcome logged;
    nothing runs as an unobserved background task. An optional sweep
    re-submits PENDING scans found in storage (e.g. after a restart or a
    failed submit), first at start-up and then every *sweep_interval*.
    """

    def __init__(
        self,
        run_fn: Callable[[uuid.UUID], Awaitable[object]],
        *,
        workers: int = DEFAULT_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        sweep_fn: Callable[[], Awaitable[list[uuid.UUID]]] | None = None,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._run_fn = run_fn
        self._workers = workers
        self._queue: asyncio.Queue[uuid.UUID] = asyncio.Queue(maxsize=queue_size)
        self._queued: set[uuid.UUID] = set()
        self._sweep_fn = sweep_fn
        self._sweep_interval = sweep_interval
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of scan ids waiting for a worker."""
        return self._queue.qsize()

    def submit(self, scan_id: uuid.UUID) -> None:
        """Queue *scan_id*; a no-op if it is already queued.

        Raises :class:`SchedulingError` when the scheduler is stopped or
        the queue is full.
        """
        if not self._running:
            raise SchedulingError("scheduler is not running")
        if scan_id in self._queued:
            return
        try:
            self._queue.put_nowait(scan_id)
        except asyncio.QueueFull as exc:
            raise SchedulingError("scan queue is full") from exc
        self._queued.add(scan_id)
        logger.debug("scheduler.submitted", scan_id=str(scan_id), pending=self.pending)

    async def start(self) -> None:
        """Start worker tasks (and the pending sweep, if configured)."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"scan-worker-{i}")
            for i in range(self._workers)
        ]
        if self._sweep_fn is not None:
            self._tasks.append(asyncio.create_task(self._sweep_loop(), name="scan-sweep"))
        logger.info("scheduler.started", workers=self._workers)

    async def stop(self) -> None:
        """Cancel workers and wait for them to exit.

        Scans interrupted mid-run stay IN_PROGRESS; queued ones stay PENDING
        and are picked up by the next sweep.
        """
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("scheduler.stopped", abandoned=self.pending)

    async def join(self) -> None:
        """Wait until every queued scan has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            scan_id = await self._queue.get()
            self._queued.discard(scan_id)
            try:
                await self._run_fn(scan_id)
            except (InvalidStateError, NotFoundError) as exc:
                # Already claimed elsewhere or deleted; nothing to do.
                logger.info("scheduler.skipped", scan_id=str(scan_id), reason=str(exc))
            except Exception:
                logger.exception("scheduler.run_failed", scan_id=str(scan_id), worker=index)
            finally:
                self._queue.task_done()

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await self.sweep()
            except Exception:
                logger.exception("scheduler.sweep_failed")
            await asyncio.sleep(self._sweep_interval)

    async def sweep(self) -> int:
        """Submit every PENDING scan reported by the sweep function."""
        if self._sweep_fn is None:
            return 0
        submitted = 0
        for scan_id in await self._sweep_fn():
            try:
                self.submit(scan_id)
            except SchedulingError:
                logger.warning("scheduler.sweep_queue_full", remaining_from=str(scan_id))
                break
            submitted += 1
        if submitted:
            logger.info("scheduler.swept", submitted=submitted)
        return submitted
