"""ScanDAO — scans table operations."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scansentinel.dao.base import BaseDAO, Page
from scansentinel.models.scan import Scan


class ScanDAO(BaseDAO[Scan]):
    model = Scan

    # ── read ──────────────────────────────────────────────────────────────

    async def list_by_owner(
        self,
        session: AsyncSession,
        owner_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> Page[Scan]:
        """Paginated scans for an owner, newest first (API — scan history)."""
        query = select(Scan).where(Scan.owner_id == owner_id)
        return await self.paginate(session, query, limit, offset)

    async def list_pending_ids(self, session: AsyncSession, limit: int = 100) -> list[uuid.UUID]:
        """Return ids of scans still waiting to run, oldest first (Scheduler sweep)."""
        stmt = (
            select(Scan.id)
            .where(Scan.status == "pending")
            .order_by(Scan.created_at.asc(), Scan.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    # ── write ─────────────────────────────────────────────────────────────

    async def claim(
        self,
        session: AsyncSession,
        pk: uuid.UUID,
        *,
        started_at: datetime,
    ) -> bool:
        """Atomically move a scan from pending to in_progress.

        Returns False when no row matched (unknown id or not pending);
        the row is left untouched in that case.
        """
        self._require_pk(pk)
        stmt = (
            update(Scan)
            .where(Scan.id == pk, Scan.status == "pending")
            .values(status="in_progress", started_at=started_at)
            .returning(Scan.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def update_status(
        self,
        session: AsyncSession,
        pk: uuid.UUID,
        *,
        status: str,
        expected_status: str | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        duration_ms: int | None = None,
        error: str | None = None,
        failed_stage: str | None = None,
    ) -> bool:
        """Update scan status and optional timestamps / error metadata.

        Only provided (non-None) fields are updated. When *expected_status*
        is given the write is conditional on the current status.
        Returns True if a row was updated.
        """
        self._require_pk(pk)
        values: dict[str, Any] = {"status": status}
        if started_at is not None:
            values["started_at"] = started_at
        if completed_at is not None:
            values["completed_at"] = completed_at
        if duration_ms is not None:
            values["duration_ms"] = duration_ms
        if error is not None:
            values["error"] = error
        if failed_stage is not None:
            values["failed_stage"] = failed_stage

        stmt = update(Scan).where(Scan.id == pk)
        if expected_status is not None:
            stmt = stmt.where(Scan.status == expected_status)
        result = await session.execute(stmt.values(**values).returning(Scan.id))
        return result.scalar_one_or_none() is not None

    async def update_results(
        self,
        session: AsyncSession,
        pk: uuid.UUID,
        *,
        results: list[dict[str, Any]],
        summary: dict[str, Any],
        completed_at: datetime,
        duration_ms: int,
    ) -> bool:
        """Persist findings + summary and mark an in-progress scan completed.

        Results and status are written in one statement so a scan is never
        observed as completed without its results.
        """
        self._require_pk(pk)
        stmt = (
            update(Scan)
            .where(Scan.id == pk, Scan.status == "in_progress")
            .values(
                status="completed",
                results=results,
                summary=summary,
                completed_at=completed_at,
                duration_ms=duration_ms,
            )
            .returning(Scan.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
