"""Collaborator contracts consumed by the scan pipeline."""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from scansentinel.engines.scan_pipeline.models import DirectoryEntry, Finding


class RepositorySource(Protocol):
    """Read-only access to a hosted repository tree.

    Any method may raise :class:`~scansentinel.engines.scan_pipeline.errors.RateLimitError`
    to ask the caller to wait and retry.
    """

    async def list_directory(self, target: str, path: str, ref: str) -> list[DirectoryEntry]: ...

    async def get_file_content(self, target: str, path: str, ref: str) -> str: ...

    async def dominant_language(self, target: str) -> str: ...


class AnalysisClient(Protocol):
    """External content-analysis capability (per-file findings + summary)."""

    async def analyze(self, content: str, language_hint: str) -> list[Finding]: ...

    async def summarize(self, findings: Sequence[Finding]) -> Mapping[str, Any]: ...


class ScanSubmitter(Protocol):
    """Anything that can queue a scan id for background execution."""

    def submit(self, scan_id: uuid.UUID) -> None: ...
