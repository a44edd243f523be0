"""SummaryGenerator — one summarization call, then strict validation + reconciliation."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

import pydantic
import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from scansentinel.engines.scan_pipeline.contracts import AnalysisClient
from scansentinel.engines.scan_pipeline.errors import SummarizationError
from scansentinel.engines.scan_pipeline.models import (
    Finding,
    Summary,
    count_by_severity,
    rank_modules,
)

log = structlog.get_logger("scansentinel.engine")


def _alias(*names: str) -> Any:
    return Field(default=0, validation_alias=AliasChoices(*names))


class _SummaryResponse(BaseModel):
    """Shape the summarization capability is asked to return.

    Accepts both the camelCase keys of the prompt schema and snake_case.
    Missing fields default. Counts are lenient; text and list fields of
    the wrong type are errors.
    """

    model_config = ConfigDict(extra="ignore")

    total_issues: int = _alias("totalIssues", "total_issues")
    critical_count: int = _alias("criticalCount", "critical_count")
    high_count: int = _alias("highCount", "high_count")
    medium_count: int = _alias("mediumCount", "medium_count")
    low_count: int = _alias("lowCount", "low_count")
    short_summary: str = Field(
        default="", validation_alias=AliasChoices("shortSummary", "short_summary")
    )
    detailed_analysis: str = Field(
        default="", validation_alias=AliasChoices("detailedAnalysis", "detailed_analysis")
    )
    recommendations: list[str] = Field(default_factory=list)

    @field_validator(
        "total_issues", "critical_count", "high_count", "medium_count", "low_count",
        mode="before",
    )
    @classmethod
    def _lenient_count(cls, value: Any) -> int:
        # recomputed from the findings afterwards
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator("short_summary", "detailed_analysis", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("recommendations", mode="before")
    @classmethod
    def _null_list(cls, value: Any) -> Any:
        return [] if value is None else value


class SummaryGenerator:
    """Turn a merged finding set into a validated :class:`Summary`."""

    def __init__(self, client: AnalysisClient, *, call_timeout: float | None = None) -> None:
        self._client = client
        self._call_timeout = call_timeout

    async def summarize(self, findings: Sequence[Finding]) -> Summary:
        """Request a summary and normalise it.

        Severity counts and the top-modules ranking are recomputed from
        *findings*, so the returned summary always agrees with the result
        list. The analyzer's prose (summary, analysis, recommendations) is
        kept as returned.

        Raises :class:`SummarizationError` on timeout or when the response
        is not a JSON object of the expected shape.
        """
        try:
            call = self._client.summarize(findings)
            if self._call_timeout is None:
                raw = await call
            else:
                raw = await asyncio.wait_for(call, timeout=self._call_timeout)
        except asyncio.TimeoutError as exc:
            raise SummarizationError("summary generation timed out") from exc

        parsed = self.parse_response(raw)

        counts = count_by_severity(findings)
        reported = {
            "critical": parsed.critical_count,
            "high": parsed.high_count,
            "medium": parsed.medium_count,
            "low": parsed.low_count,
        }
        if reported != counts or parsed.total_issues != len(findings):
            log.warning(
                "summarizer.counts_reconciled",
                reported=reported,
                reported_total=parsed.total_issues,
                actual=counts,
                actual_total=len(findings),
            )

        return Summary(
            total_issues=sum(counts.values()),
            critical_count=counts["critical"],
            high_count=counts["high"],
            medium_count=counts["medium"],
            low_count=counts["low"],
            top_modules=rank_modules(findings),
            short_summary=parsed.short_summary,
            detailed_analysis=parsed.detailed_analysis,
            recommendations=parsed.recommendations,
        )

    @staticmethod
    def parse_response(raw: Any) -> _SummaryResponse:
        """Validate the raw summarization payload.

        Raises :class:`SummarizationError` if it is not a mapping or a
        present field has an unusable type.
        """
        if not isinstance(raw, Mapping):
            raise SummarizationError(
                f"summary response is not a JSON object (got {type(raw).__name__})"
            )
        try:
            return _SummaryResponse.model_validate(dict(raw))
        except pydantic.ValidationError as exc:
            fields = ", ".join(
                ".".join(str(part) for part in err["loc"]) for err in exc.errors()
            )
            raise SummarizationError(f"malformed summary response: {fields}") from exc
