"""Prompts for scan-level summarization."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scansentinel.engines.scan_pipeline.models import Finding

SUMMARY_SYSTEM_PROMPT = """\
You are a cybersecurity expert. Analyze a list of security scan results and
provide a summary.

# What to produce
- Count the issues by severity level
- Identify the top 3 modules with the most issues
- Provide a brief summary of the scan results (1-2 sentences)
- Provide a detailed analysis of the security issues found (2-3 paragraphs)
- Provide concrete recommendations to address the issues (at least 3)

# Output format
Output ONLY a JSON object (no prose) with this structure:

{"totalIssues": <number>, "criticalCount": <number>, "highCount": <number>,
 "mediumCount": <number>, "lowCount": <number>,
 "topModules": [{"name": "<string>", "count": <number>}],
 "shortSummary": "<string>", "detailedAnalysis": "<string>",
 "recommendations": ["<string>"]}
"""


def _format_finding(finding: Finding) -> str:
    refs = ", ".join(finding.references) or "N/A"
    line = finding.line_number if finding.line_number is not None else "N/A"
    return (
        f"- Module: {finding.module}\n"
        f"  - Name: {finding.name}\n"
        f"  - Description: {finding.description}\n"
        f"  - Severity: {finding.severity}\n"
        f"  - Location: {finding.location}\n"
        f"  - Line Number: {line}\n"
        f"  - Code: {finding.code or 'N/A'}\n"
        f"  - Recommendation: {finding.recommendation or 'N/A'}\n"
        f"  - References: {refs}"
    )


def format_findings_message(findings: Sequence[Finding]) -> str:
    """Format the merged finding set into the user message for the summarizer."""
    if not findings:
        return "Security Scan Results:\n(no issues were found)"
    body = "\n".join(_format_finding(f) for f in findings)
    return f"Security Scan Results:\n{body}"
