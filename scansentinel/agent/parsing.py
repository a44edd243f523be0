"""Strict JSON payload extraction from LLM output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

# One fenced block spanning the whole reply, optionally tagged (```json).
_FENCE_RE = re.compile(r"\A```[A-Za-z0-9_-]*[ \t]*\n(?P<body>.*)\n?```\Z", re.DOTALL)


@dataclass
class ParseOk:
    value: Any


@dataclass
class ParseError:
    reason: str
    raw: str


def parse_json_payload(text: str) -> ParseOk | ParseError:
    """Parse *text* as a single JSON document.

    The whole reply must be JSON, optionally wrapped in exactly one code
    fence. Prose around the payload is rejected rather than scraped.
    """
    body = text.strip()
    if not body:
        return ParseError(reason="empty response", raw=text)

    match = _FENCE_RE.match(body)
    if match:
        body = match.group("body").strip()

    try:
        return ParseOk(value=json.loads(body))
    except json.JSONDecodeError as exc:
        return ParseError(reason=f"invalid JSON: {exc.msg} at line {exc.lineno}", raw=text)
