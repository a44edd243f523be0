"""scans table."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, Enum, Index, Text, desc, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from scansentinel.core.database import Base, TimestampMixin

SCAN_STATUSES = ("pending", "in_progress", "completed", "failed")
TERMINAL_STATUSES = frozenset({"completed", "failed"})

SCAN_KINDS = ("repository", "pull_request", "raw_code", "url")
SUPPORTED_KINDS = frozenset({"repository"})

scan_status_enum = Enum(*SCAN_STATUSES, name="scan_status", create_type=False)
scan_kind_enum = Enum(*SCAN_KINDS, name="scan_kind", create_type=False)


class Scan(TimestampMixin, Base):
    __tablename__ = "scans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    owner_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    kind: Mapped[str] = mapped_column(scan_kind_enum, nullable=False)
    target: Mapped[str] = mapped_column(Text, nullable=False)
    branch: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'main'")
    )
    status: Mapped[str] = mapped_column(
        scan_status_enum, nullable=False, server_default=text("'pending'")
    )

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration_ms: Mapped[Optional[int]] = mapped_column(BigInteger)

    # populated only once status = completed
    results: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSONB)
    summary: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)

    # populated only once status = failed
    error: Mapped[Optional[str]] = mapped_column(Text)
    failed_stage: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_scans_owner_cursor", "owner_id", desc("created_at"), desc("id")),
        Index(
            "idx_scans_pending", "created_at",
            postgresql_where="status = 'pending'",
        ),
    )
