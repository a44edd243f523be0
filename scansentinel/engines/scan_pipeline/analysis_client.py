"""LLMAnalysisClient — AnalysisClient backed by an LLM via litellm."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pydantic
import structlog

from scansentinel.agent.llm_client import LLMClient
from scansentinel.agent.parsing import ParseError, parse_json_payload
from scansentinel.agent.prompts.analyzer import ANALYZER_SYSTEM_PROMPT, format_code_message
from scansentinel.agent.prompts.summary import SUMMARY_SYSTEM_PROMPT, format_findings_message
from scansentinel.engines.scan_pipeline.errors import AnalysisResponseError, SummarizationError
from scansentinel.engines.scan_pipeline.models import Finding

log = structlog.get_logger("scansentinel.engine")


class LLMAnalysisClient:
    """Per-file analysis and scan summarization through :class:`LLMClient`.

    Responses must be a JSON document (optionally fenced). Per-file
    replies must be a list of finding objects; anything else raises
    :class:`AnalysisResponseError`. Summary replies that are not JSON
    raise :class:`SummarizationError`; shape checks happen downstream.
    """

    def __init__(self, llm: LLMClient | None = None) -> None:
        self._llm = llm or LLMClient()

    async def analyze(self, content: str, language_hint: str) -> list[Finding]:
        resp = await self._llm.create(
            system=ANALYZER_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": format_code_message(content, language_hint)}],
        )
        log.debug(
            "analysis.llm_call",
            input_tokens=resp.input_tokens,
            output_tokens=resp.output_tokens,
            latency_ms=resp.latency_ms,
        )

        parsed = parse_json_payload(resp.content)
        if isinstance(parsed, ParseError):
            raise AnalysisResponseError(parsed.reason)
        if not isinstance(parsed.value, list):
            raise AnalysisResponseError(
                f"expected a JSON array of findings, got {type(parsed.value).__name__}"
            )

        try:
            return [Finding.model_validate(item) for item in parsed.value]
        except pydantic.ValidationError as exc:
            raise AnalysisResponseError(f"malformed finding: {exc.error_count()} error(s)") from exc

    async def summarize(self, findings: Sequence[Finding]) -> Mapping[str, Any]:
        resp = await self._llm.create(
            system=SUMMARY_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": format_findings_message(findings)}],
        )
        log.debug(
            "summary.llm_call",
            input_tokens=resp.input_tokens,
            output_tokens=resp.output_tokens,
            latency_ms=resp.latency_ms,
        )

        parsed = parse_json_payload(resp.content)
        if isinstance(parsed, ParseError):
            raise SummarizationError(f"summary response is not JSON: {parsed.reason}")
        return parsed.value
