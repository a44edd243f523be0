"""AnalysisAggregator — bounded-concurrency per-file analysis with partial-failure tolerance."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable

import structlog

from scansentinel.engines.scan_pipeline.contracts import AnalysisClient
from scansentinel.engines.scan_pipeline.errors import describe_error
from scansentinel.engines.scan_pipeline.models import (
    AggregateResult,
    AnalysisUnit,
    AnalysisUnitFailure,
    Finding,
)

log = structlog.get_logger("scansentinel.engine")

DEFAULT_CONCURRENCY = 4


class AnalysisAggregator:
    """Dispatch analysis units to an :class:`AnalysisClient` and merge the findings.

    At most *concurrency* analyze calls are outstanding at once; the
    traversal sequence is not advanced while every slot is busy, which is
    the pipeline's only backpressure against the analyzer's rate limit.
    """

    def __init__(
        self,
        client: AnalysisClient,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        call_timeout: float | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._client = client
        self._concurrency = concurrency
        self._call_timeout = call_timeout

    async def aggregate(self, units: AsyncIterable[AnalysisUnit]) -> AggregateResult:
        """Analyze every unit and return the merged findings.

        A failing unit (exception, malformed response, timeout) is recorded
        in ``failures`` and contributes no findings. Exceptions raised by
        *units* itself cancel in-flight analyses and propagate.
        """
        result = AggregateResult()
        sem = asyncio.Semaphore(self._concurrency)
        in_flight: set[asyncio.Task[None]] = set()

        def _on_done(task: asyncio.Task[None]) -> None:
            in_flight.discard(task)
            sem.release()

        try:
            async for unit in units:
                await sem.acquire()
                task = asyncio.create_task(self._analyze_unit(unit, result))
                in_flight.add(task)
                task.add_done_callback(_on_done)
            if in_flight:
                await asyncio.gather(*in_flight)
        except BaseException:
            tasks = list(in_flight)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        log.info(
            "aggregator.finished",
            analyzed=result.analyzed,
            failed=len(result.failures),
            findings=len(result.findings),
        )
        return result

    async def _analyze_unit(self, unit: AnalysisUnit, result: AggregateResult) -> None:
        """Analyze one unit; never raises except on cancellation."""
        try:
            call = self._client.analyze(unit.content, unit.language_hint)
            if self._call_timeout is None:
                raw = await call
            else:
                raw = await asyncio.wait_for(call, timeout=self._call_timeout)
            # The analyzer does not know repository paths.
            findings = [
                (item if isinstance(item, Finding) else Finding.model_validate(item)).model_copy(
                    update={"location": unit.path}
                )
                for item in raw
            ]
        except Exception as exc:
            reason = describe_error(exc)
            log.warning("aggregator.unit_failed", path=unit.path, error=reason)
            result.failures.append(AnalysisUnitFailure(path=unit.path, error=reason))
            return

        result.analyzed += 1
        result.findings.extend(findings)
