"""Data models for the scan pipeline — no DB dependencies."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Severity = Literal["low", "medium", "high", "critical"]
EntryKind = Literal["file", "dir"]

SEVERITIES: tuple[Severity, ...] = ("critical", "high", "medium", "low")
TOP_MODULES_LIMIT = 3
DEFAULT_MODULE = "CodeAnalysis"

# ── severity mapping ──────────────────────────────────────────────────────

_SEVERITY_MAP: dict[str, Severity] = {
    "critical": "critical",
    "high": "high",
    "medium": "medium",
    "low": "low",
    # Common aliases
    "moderate": "medium",
    "important": "high",
    "severe": "critical",
    "minor": "low",
    "negligible": "low",
    "info": "low",
    "informational": "low",
}


def normalize_severity(value: Any) -> Severity:
    """Map an analyzer-supplied severity onto the four-level scale (default medium)."""
    if value is None:
        return "medium"
    return _SEVERITY_MAP.get(str(value).lower().strip(), "medium")


# ── traversal ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry of a repository directory listing."""

    name: str
    path: str
    kind: str  # file | dir | symlink | submodule


@dataclass(frozen=True)
class AnalysisUnit:
    """A file ready for analysis: repository path, decoded content, language hint."""

    path: str
    content: str
    language_hint: str


# ── findings ──────────────────────────────────────────────────────────────


class Finding(BaseModel):
    """One reported issue from analyzing a single file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    module: str = DEFAULT_MODULE
    name: str
    description: str = ""
    severity: Severity = "medium"
    location: str = ""
    line_number: int | None = Field(default=None, alias="lineNumber")
    code: str | None = None
    recommendation: str | None = None
    references: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return str(uuid.uuid4())
        return str(value)

    @field_validator("module", mode="before")
    @classmethod
    def _default_module(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_MODULE
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Severity:
        return normalize_severity(value)

    @field_validator("line_number", mode="before")
    @classmethod
    def _lenient_line_number(cls, value: Any) -> Any:
        # Analyzers sometimes answer "N/A" or "" when no line applies.
        if isinstance(value, str) and not value.strip().isdigit():
            return None
        return value

    @field_validator("references", mode="before")
    @classmethod
    def _default_references(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class ModuleCount(BaseModel):
    name: str
    count: int


class Summary(BaseModel):
    """Aggregate severity / ranking judgment over all findings of a scan."""

    total_issues: int = 0
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0
    top_modules: list[ModuleCount] = Field(default_factory=list)
    short_summary: str = ""
    detailed_analysis: str = ""
    recommendations: list[str] = Field(default_factory=list)


def count_by_severity(findings: Iterable[Finding]) -> dict[Severity, int]:
    """Return a count for each of the four severities (zero-filled)."""
    counts: dict[Severity, int] = {sev: 0 for sev in SEVERITIES}
    for finding in findings:
        counts[finding.severity] += 1
    return counts


def rank_modules(findings: Iterable[Finding], limit: int = TOP_MODULES_LIMIT) -> list[ModuleCount]:
    """Rank module labels by finding count desc, ties broken by label asc."""
    counter = Counter(finding.module for finding in findings)
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [ModuleCount(name=name, count=count) for name, count in ranked[:limit]]


# ── aggregation ───────────────────────────────────────────────────────────


@dataclass
class AnalysisUnitFailure:
    """A unit whose analysis failed and contributed zero findings."""

    path: str
    error: str


@dataclass
class AggregateResult:
    """Merged output of one aggregation run."""

    findings: list[Finding] = field(default_factory=list)
    analyzed: int = 0
    failures: list[AnalysisUnitFailure] = field(default_factory=list)


@dataclass
class TraversalStats:
    """Counters describing how much of the tree a traversal actually read."""

    dirs_visited: int = 0
    dirs_failed: int = 0
    files_yielded: int = 0
    files_failed: int = 0
    entries_skipped: int = 0
