"""LLM access — litellm client wrapper, prompts, and response parsing."""

from scansentinel.agent.llm_client import LLMClient, LLMResponse
from scansentinel.agent.parsing import ParseError, ParseOk, parse_json_payload

__all__ = [
    "LLMClient",
    "LLMResponse",
    "ParseError",
    "ParseOk",
    "parse_json_payload",
]
