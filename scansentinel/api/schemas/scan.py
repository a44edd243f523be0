"""Scan request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class CreateScanRequest(BaseModel):
    owner_id: str
    name: str
    kind: str = "repository"
    target: str
    description: str | None = None
    branch: str | None = None

    @field_validator("owner_id", "name", "target", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class ScanListItem(BaseModel):
    """Scan fields without the (potentially large) result list."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: str
    name: str
    description: str | None
    kind: str
    target: str
    branch: str
    status: str
    started_at: datetime | None
    completed_at: datetime | None
    duration_ms: int | None
    error: str | None
    failed_stage: str | None
    created_at: datetime
    updated_at: datetime


class ScanResponse(ScanListItem):
    """Full scan record, including findings and summary once COMPLETED."""

    results: list[dict[str, Any]] | None = None
    summary: dict[str, Any] | None = None
