"""RepositoryTraverser — depth-first walk producing analysis units lazily."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

import structlog

from scansentinel.engines.scan_pipeline.contracts import RepositorySource
from scansentinel.engines.scan_pipeline.errors import (
    RateLimitError,
    SourceUnavailableError,
    describe_error,
)
from scansentinel.engines.scan_pipeline.models import AnalysisUnit, TraversalStats
from scansentinel.engines.scan_pipeline.path_filter import PathDecision, decide, language_hint

log = structlog.get_logger("scansentinel.engine")

T = TypeVar("T")

_MAX_RATE_LIMIT_WAITS = 5


class RepositoryTraverser:
    """Walk a repository through a :class:`RepositorySource`.

    Every call to :meth:`traverse` issues fresh listing/content requests;
    the produced sequence cannot be rewound. A traverser instance keeps
    the :class:`TraversalStats` of its most recent walk.
    """

    def __init__(self, source: RepositorySource, *, call_timeout: float | None = None) -> None:
        self._source = source
        self._call_timeout = call_timeout
        self.stats = TraversalStats()

    async def traverse(self, target: str, branch: str) -> AsyncIterator[AnalysisUnit]:
        """Yield an :class:`AnalysisUnit` for every analyzable file under the root.

        Raises :class:`SourceUnavailableError` if the repository cannot be
        resolved, its root cannot be listed, or any listing times out.
        Sub-directory listing errors and single-file fetch errors are
        logged and skipped.
        """
        self.stats = TraversalStats()
        try:
            dominant = await self._call(lambda: self._source.dominant_language(target))
        except Exception as exc:
            raise SourceUnavailableError(
                f"failed to resolve repository {target}: {describe_error(exc)}"
            ) from exc

        log.info("traverser.started", target=target, branch=branch, language=dominant)
        async for unit in self._walk(target, "", branch, dominant or ""):
            yield unit
        log.info(
            "traverser.finished",
            target=target,
            dirs_visited=self.stats.dirs_visited,
            dirs_failed=self.stats.dirs_failed,
            files=self.stats.files_yielded,
            files_failed=self.stats.files_failed,
            skipped=self.stats.entries_skipped,
        )

    async def _walk(
        self,
        target: str,
        path: str,
        branch: str,
        dominant: str,
    ) -> AsyncIterator[AnalysisUnit]:
        try:
            entries = await self._call(lambda: self._source.list_directory(target, path, branch))
        except asyncio.TimeoutError as exc:
            raise SourceUnavailableError(f"listing {path or '/'} timed out") from exc
        except Exception as exc:
            if not path:
                raise SourceUnavailableError(
                    f"failed to list repository root of {target}: {describe_error(exc)}"
                ) from exc
            self.stats.dirs_failed += 1
            log.warning("traverser.dir_failed", path=path, error=describe_error(exc))
            return

        self.stats.dirs_visited += 1
        for entry in entries:
            if entry.kind not in ("file", "dir"):
                self.stats.entries_skipped += 1
                continue

            decision = decide(entry.path, is_dir=entry.kind == "dir")
            if decision is PathDecision.SKIP:
                self.stats.entries_skipped += 1
                continue
            if decision is PathDecision.DESCEND:
                async for unit in self._walk(target, entry.path, branch, dominant):
                    yield unit
                continue

            try:
                content = await self._call(
                    lambda: self._source.get_file_content(target, entry.path, branch)
                )
            except Exception as exc:
                self.stats.files_failed += 1
                log.warning("traverser.file_failed", path=entry.path, error=describe_error(exc))
                continue

            self.stats.files_yielded += 1
            yield AnalysisUnit(
                path=entry.path,
                content=content,
                language_hint=language_hint(entry.name, dominant),
            )

    async def _call(self, request: Callable[[], Awaitable[T]]) -> T:
        """Run *request* under the per-call timeout.

        A :class:`RateLimitError` is waited out here, outside the timeout,
        and the request reissued.
        """
        waits = 0
        while True:
            try:
                if self._call_timeout is None:
                    return await request()
                return await asyncio.wait_for(request(), timeout=self._call_timeout)
            except RateLimitError as exc:
                waits += 1
                if waits > _MAX_RATE_LIMIT_WAITS:
                    raise
                log.info("traverser.rate_limit_wait", wait_seconds=exc.retry_after)
                await asyncio.sleep(exc.retry_after)
