"""ScanService — scan record CRUD and lifecycle transitions."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from scansentinel.core.github import normalize_target
from scansentinel.dao.scan_dao import ScanDAO
from scansentinel.models.scan import SCAN_KINDS, Scan
from scansentinel.services import InvalidStateError, NotFoundError, ValidationError

DEFAULT_BRANCH = "main"


class ScanService:
    """Stateless service for scan CRUD and status transitions."""

    def __init__(self, scan_dao: ScanDAO) -> None:
        self._scan_dao = scan_dao

    async def get(self, session: AsyncSession, scan_id: uuid.UUID) -> Scan:
        """Return scan by ID.

        Raises :class:`NotFoundError` if not found.
        """
        scan = await self._scan_dao.get_by_id(session, scan_id)
        if scan is None:
            raise NotFoundError("scan not found")
        return scan

    async def list_by_owner(
        self,
        session: AsyncSession,
        owner_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> dict:
        """Return one page of an owner's scans plus the total count."""
        page = await self._scan_dao.list_by_owner(session, owner_id, limit, offset)
        return {
            "data": page.data,
            "total": page.total,
            "has_more": page.has_more,
        }

    async def list_pending_ids(self, session: AsyncSession, limit: int = 100) -> list[uuid.UUID]:
        return await self._scan_dao.list_pending_ids(session, limit)

    async def create(
        self,
        session: AsyncSession,
        *,
        owner_id: str,
        name: str,
        kind: str,
        target: str,
        description: str | None = None,
        branch: str | None = None,
    ) -> Scan:
        """Create a new scan record (status defaults to 'pending').

        Repository targets are normalised to ``owner/repo``.
        Raises :class:`ValidationError` for an unknown kind, a blank
        name/target, or an unparseable repository target.
        """
        if kind not in SCAN_KINDS:
            raise ValidationError(f"unknown scan kind: {kind!r}")
        if not name.strip():
            raise ValidationError("scan name is required")
        if not target.strip():
            raise ValidationError("scan target is required")

        if kind == "repository":
            try:
                target = normalize_target(target)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

        return await self._scan_dao.create(
            session,
            owner_id=owner_id,
            name=name.strip(),
            description=description,
            kind=kind,
            target=target.strip(),
            branch=(branch or "").strip() or DEFAULT_BRANCH,
            status="pending",
        )

    async def claim(
        self,
        session: AsyncSession,
        scan_id: uuid.UUID,
        *,
        started_at: datetime,
    ) -> Scan:
        """Transition a pending scan to in_progress and return it.

        The transition is a single conditional UPDATE, so two concurrent
        callers can never both start the same scan.

        Raises :class:`NotFoundError` for an unknown id and
        :class:`InvalidStateError` if the scan is not pending.
        """
        claimed = await self._scan_dao.claim(session, scan_id, started_at=started_at)
        scan = await self.get(session, scan_id)
        if not claimed:
            raise InvalidStateError(f"cannot start scan with status {scan.status}")
        return scan

    async def mark_completed(
        self,
        session: AsyncSession,
        scan_id: uuid.UUID,
        *,
        results: list[dict[str, Any]],
        summary: dict[str, Any],
        completed_at: datetime,
        duration_ms: int,
    ) -> None:
        """Store results + summary and move the scan to completed."""
        updated = await self._scan_dao.update_results(
            session,
            scan_id,
            results=results,
            summary=summary,
            completed_at=completed_at,
            duration_ms=duration_ms,
        )
        if not updated:
            raise InvalidStateError("scan is no longer in progress")

    async def mark_failed(
        self,
        session: AsyncSession,
        scan_id: uuid.UUID,
        *,
        error: str,
        failed_stage: str | None,
        completed_at: datetime,
        duration_ms: int,
    ) -> None:
        """Record the error and move the scan to failed."""
        updated = await self._scan_dao.update_status(
            session,
            scan_id,
            status="failed",
            expected_status="in_progress",
            completed_at=completed_at,
            duration_ms=duration_ms,
            error=error,
            failed_stage=failed_stage,
        )
        if not updated:
            raise InvalidStateError("scan is no longer in progress")
