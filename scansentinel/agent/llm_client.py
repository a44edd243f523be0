"""Thin async wrapper around litellm.acompletion()."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any

import litellm

DEFAULT_MODEL = "anthropic/claude-3-haiku-20240307"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.2

# Provider substring → env var holding its key.
_PROVIDER_KEYS: tuple[tuple[str, str], ...] = (
    ("claude", "ANTHROPIC_API_KEY"),
    ("anthropic", "ANTHROPIC_API_KEY"),
    ("gpt", "OPENAI_API_KEY"),
    ("openai", "OPENAI_API_KEY"),
    ("gemini", "GEMINI_API_KEY"),
    ("deepseek", "DEEPSEEK_API_KEY"),
)


# ── LLM Response ─────────────────────────────────────────────────────────────
@dataclass
class LLMResponse:
    """Standardised response from a single LLM call."""

    content: str = ""
    stop_reason: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0


# ── LLM Client ───────────────────────────────────────────────────────────────
class LLMClient:
    """Async-only wrapper around ``litellm.acompletion()``.

    Model and output budget come from ``SCANSENTINEL_LLM_MODEL`` and
    ``SCANSENTINEL_LLM_MAX_TOKENS`` unless passed explicitly.

    Usage::

        client = LLMClient()
        resp = await client.create(
            system="You are a cybersecurity expert.",
            messages=[{"role": "user", "content": "..."}],
        )
    """

    def __init__(self, model: str | None = None, max_tokens: int | None = None) -> None:
        self.model = self.resolve_model(model)
        if max_tokens is None:
            max_tokens = int(os.environ.get("SCANSENTINEL_LLM_MAX_TOKENS", DEFAULT_MAX_TOKENS))
        self.max_tokens = max_tokens

    @staticmethod
    def resolve_model(model: str | None = None) -> str:
        """Return a litellm-compatible model ID, falling back to the env default."""
        if model:
            return model
        return os.environ.get("SCANSENTINEL_LLM_MODEL") or DEFAULT_MODEL

    @staticmethod
    def _get_api_key(model_id: str) -> str | None:
        """Guess the provider from *model_id* and read its key from the env."""
        model_lower = model_id.lower()
        for needle, env_var in _PROVIDER_KEYS:
            if needle in model_lower:
                return os.environ.get(env_var)
        return None

    async def create(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Send a chat completion request and return a standardised response."""
        model_id = model or self.model
        full_messages: list[dict[str, Any]] = [
            {"role": "system", "content": system},
            *messages,
        ]

        kwargs: dict[str, Any] = {
            "model": model_id,
            "messages": full_messages,
            "temperature": temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }
        api_key = self._get_api_key(model_id)
        if api_key:
            kwargs["api_key"] = api_key

        t0 = time.monotonic()
        raw = await litellm.acompletion(**kwargs)
        latency_ms = int((time.monotonic() - t0) * 1000)

        choice = raw.choices[0]
        usage = raw.usage or litellm.Usage()

        return LLMResponse(
            content=choice.message.content or "",
            stop_reason=choice.finish_reason or "",
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
            latency_ms=latency_ms,
        )
