"""ScanLifecycleManager — state machine + stage orchestration for scans."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scansentinel.engines.scan_pipeline.aggregator import DEFAULT_CONCURRENCY, AnalysisAggregator
from scansentinel.engines.scan_pipeline.contracts import (
    AnalysisClient,
    RepositorySource,
    ScanSubmitter,
)
from scansentinel.engines.scan_pipeline.errors import SourceUnavailableError, describe_error
from scansentinel.engines.scan_pipeline.models import AggregateResult, Summary
from scansentinel.engines.scan_pipeline.summarizer import SummaryGenerator
from scansentinel.engines.scan_pipeline.traverser import RepositoryTraverser
from scansentinel.models.scan import SUPPORTED_KINDS, Scan
from scansentinel.services import InvalidStateError, UnsupportedKindError
from scansentinel.services.scan_service import ScanService

log = structlog.get_logger("scansentinel.engine")

STAGE_DISPATCH = "dispatch"
STAGE_TRAVERSE = "traverse"
STAGE_AGGREGATE = "aggregate"
STAGE_SUMMARIZE = "summarize"


@dataclass
class _Progress:
    stage: str = STAGE_DISPATCH


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_duration_ms(scan: Scan, completed_at: datetime) -> int:
    """Milliseconds from start (or creation, if never started) to *completed_at*."""
    began = scan.started_at or scan.created_at
    if began is None:
        return 0
    return max(int((completed_at - began).total_seconds() * 1000), 0)


class ScanLifecycleManager:
    """Owns the PENDING → IN_PROGRESS → COMPLETED/FAILED state machine.

    Collaborators are injected; every DB write uses its own short-lived
    session from *session_factory* so no session is held across network
    I/O. Execution is handed to a :class:`ScanSubmitter` (normally the
    :class:`~scansentinel.scheduler.ScanScheduler`) attached after
    construction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scan_service: ScanService,
        source: RepositorySource,
        analysis_client: AnalysisClient,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        call_timeout: float | None = None,
        scan_deadline: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._scan_service = scan_service
        self._source = source
        self._client = analysis_client
        self._concurrency = concurrency
        self._call_timeout = call_timeout
        self._scan_deadline = scan_deadline
        self._scheduler: ScanSubmitter | None = None

    def attach_scheduler(self, scheduler: ScanSubmitter | None) -> None:
        self._scheduler = scheduler

    # ── caller-facing operations ──────────────────────────────────────────

    async def create_scan(
        self,
        *,
        owner_id: str,
        name: str,
        kind: str,
        target: str,
        description: str | None = None,
        branch: str | None = None,
    ) -> Scan:
        """Persist a PENDING scan and queue it for execution.

        The record is committed before it is queued. A queueing failure is
        logged and does not fail creation; the scheduler's pending sweep
        picks the scan up later.
        """
        async with self._session_factory() as session:
            async with session.begin():
                scan = await self._scan_service.create(
                    session,
                    owner_id=owner_id,
                    name=name,
                    kind=kind,
                    target=target,
                    description=description,
                    branch=branch,
                )
        log.info("scan.created", scan_id=str(scan.id), kind=scan.kind, target=scan.target)

        if self._scheduler is None:
            log.warning("scan.not_scheduled", scan_id=str(scan.id), reason="no scheduler")
            return scan
        try:
            self._scheduler.submit(scan.id)
        except Exception:
            log.exception("scan.schedule_failed", scan_id=str(scan.id))
        return scan

    async def get_scan(self, scan_id: uuid.UUID) -> Scan:
        """Raises :class:`NotFoundError` if absent."""
        async with self._session_factory() as session:
            return await self._scan_service.get(session, scan_id)

    async def list_scans(
        self, owner_id: str, limit: int = 10, offset: int = 0
    ) -> tuple[list[Scan], int]:
        async with self._session_factory() as session:
            page = await self._scan_service.list_by_owner(session, owner_id, limit, offset)
        return page["data"], page["total"]

    async def list_pending_ids(self, limit: int = 100) -> list[uuid.UUID]:
        async with self._session_factory() as session:
            return await self._scan_service.list_pending_ids(session, limit)

    async def start_scan(self, scan_id: uuid.UUID) -> Scan:
        """Queue a PENDING scan for execution.

        Raises :class:`NotFoundError` / :class:`InvalidStateError`. Without
        an attached scheduler the scan is executed inline.
        """
        scan = await self.get_scan(scan_id)
        if scan.status != "pending":
            raise InvalidStateError(f"cannot start scan with status {scan.status}")
        if self._scheduler is None:
            return await self.execute(scan_id)
        self._scheduler.submit(scan_id)
        return scan

    # ── execution ─────────────────────────────────────────────────────────

    async def execute(self, scan_id: uuid.UUID) -> Scan:
        """Run a PENDING scan to a terminal state and return the final record.

        Raises :class:`NotFoundError` or :class:`InvalidStateError` (record
        untouched) when the scan cannot be claimed. Stage failures do not
        propagate: they are stored on the scan, which ends FAILED.
        """
        structlog.contextvars.bind_contextvars(scan_id=str(scan_id))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    scan = await self._scan_service.claim(
                        session, scan_id, started_at=_utcnow()
                    )
            log.info("scan.started", kind=scan.kind, target=scan.target, branch=scan.branch)

            progress = _Progress()
            try:
                run = self._run_stages(scan, progress)
                if self._scan_deadline is None:
                    aggregate, summary = await run
                else:
                    aggregate, summary = await asyncio.wait_for(run, timeout=self._scan_deadline)
            except asyncio.TimeoutError as exc:
                message = describe_error(exc)
                if self._scan_deadline is not None:
                    message = f"scan exceeded deadline of {self._scan_deadline}s"
                await self._fail(scan, progress.stage, message, exc)
            except Exception as exc:
                await self._fail(scan, progress.stage, describe_error(exc), exc)
            else:
                await self._complete(scan, aggregate, summary)

            return await self.get_scan(scan_id)
        finally:
            structlog.contextvars.unbind_contextvars("scan_id")

    async def _run_stages(self, scan: Scan, progress: _Progress) -> tuple[AggregateResult, Summary]:
        if scan.kind not in SUPPORTED_KINDS:
            raise UnsupportedKindError(f"unsupported scan kind: {scan.kind}")

        progress.stage = STAGE_TRAVERSE
        traverser = RepositoryTraverser(self._source, call_timeout=self._call_timeout)
        aggregator = AnalysisAggregator(
            self._client, concurrency=self._concurrency, call_timeout=self._call_timeout
        )
        # Traversal is lazy: units are pulled by the aggregator, so a
        # traversal error surfaces while the aggregate stage is running.
        units = traverser.traverse(scan.target, scan.branch)
        progress.stage = STAGE_AGGREGATE
        try:
            aggregate = await aggregator.aggregate(units)
        except SourceUnavailableError:
            progress.stage = STAGE_TRAVERSE
            raise

        progress.stage = STAGE_SUMMARIZE
        summary = await SummaryGenerator(
            self._client, call_timeout=self._call_timeout
        ).summarize(aggregate.findings)
        return aggregate, summary

    async def _complete(self, scan: Scan, aggregate: AggregateResult, summary: Summary) -> None:
        completed_at = _utcnow()
        duration_ms = compute_duration_ms(scan, completed_at)
        async with self._session_factory() as session:
            async with session.begin():
                await self._scan_service.mark_completed(
                    session,
                    scan.id,
                    results=[f.model_dump(mode="json") for f in aggregate.findings],
                    summary=summary.model_dump(mode="json"),
                    completed_at=completed_at,
                    duration_ms=duration_ms,
                )
        log.info(
            "scan.completed",
            findings=len(aggregate.findings),
            analyzed=aggregate.analyzed,
            failed_units=len(aggregate.failures),
            duration_ms=duration_ms,
        )

    async def _fail(self, scan: Scan, stage: str, message: str, exc: BaseException) -> None:
        completed_at = _utcnow()
        duration_ms = compute_duration_ms(scan, completed_at)
        log.error("scan.failed", stage=stage, error=message, exc_info=exc)
        async with self._session_factory() as session:
            async with session.begin():
                await self._scan_service.mark_failed(
                    session,
                    scan.id,
                    error=message,
                    failed_stage=stage,
                    completed_at=completed_at,
                    duration_ms=duration_ms,
                )
