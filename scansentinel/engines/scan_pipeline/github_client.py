"""Async GitHub REST client for repository scans.

Transient failures (5xx, transport timeouts) are retried here with a short
backoff. Rate limits are not slept on: the client remembers when the quota
resets and raises :class:`RateLimitError` until then, leaving the wait to
the caller.
"""

from __future__ import annotations

import asyncio
import math
import os
import time
from typing import Any

import httpx
import structlog

from scansentinel.engines.scan_pipeline.errors import RateLimitError

log = structlog.get_logger("scansentinel.engine")

_ATTEMPTS = 3
_BACKOFF_BASE = 0.5  # seconds
_MAX_QUOTA_WAIT = 300  # seconds
_FALLBACK_QUOTA_WAIT = 60  # seconds


class GitHubClient:
    """Thin async wrapper around the GitHub REST API.

    One instance is shared by every running scan, so the quota gate is
    shared too.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        token = token or os.environ.get("GITHUB_TOKEN")
        if token:
            headers["Authorization"] = f"token {token}"
        self._http = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )
        self._resume_at = 0.0  # time.monotonic() value

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET *path* and return the decoded JSON body.

        Raises :class:`RateLimitError` while the quota is exhausted and
        ``httpx.HTTPStatusError`` for other 4xx answers or once retries
        on 5xx / timeouts run out.
        """
        self._check_quota_gate()
        response = await self._send(path, params)
        self._record_quota(response)
        return response.json()

    def _check_quota_gate(self) -> None:
        remaining = self._resume_at - time.monotonic()
        if remaining > 0:
            raise RateLimitError(max(1, math.ceil(remaining)))

    def _close_quota_gate(self, wait: int) -> None:
        self._resume_at = max(self._resume_at, time.monotonic() + wait)

    def _record_quota(self, response: httpx.Response) -> None:
        # the answer is still good; only the next request has to wait
        if _header_int(response, "X-RateLimit-Remaining") == 0:
            wait = quota_wait(response)
            log.warning("github.quota_exhausted", wait_seconds=wait)
            self._close_quota_gate(wait)

    async def _send(self, path: str, params: dict[str, Any] | None) -> httpx.Response:
        error: Exception | None = None
        for attempt in range(1, _ATTEMPTS + 1):
            try:
                response = await self._http.get(path, params=params)
            except httpx.TimeoutException as exc:
                log.warning("github.timeout", path=path, attempt=attempt)
                error = exc
            else:
                if is_rate_limited(response):
                    wait = quota_wait(response)
                    log.warning("github.rate_limited", path=path, wait_seconds=wait)
                    self._close_quota_gate(wait)
                    raise RateLimitError(wait)
                if response.status_code < 500:
                    response.raise_for_status()
                    return response
                log.warning(
                    "github.server_error", path=path, status=response.status_code, attempt=attempt
                )
                error = httpx.HTTPStatusError(
                    f"{response.status_code} from {path}",
                    request=response.request,
                    response=response,
                )
            if attempt < _ATTEMPTS:
                await asyncio.sleep(_BACKOFF_BASE * 2 ** (attempt - 1))
        raise error  # type: ignore[misc]


def is_rate_limited(response: httpx.Response) -> bool:
    """True for a 403/429 caused by the primary or secondary rate limit."""
    if response.status_code not in (403, 429):
        return False
    remaining = _header_int(response, "X-RateLimit-Remaining")
    if remaining is not None:
        return remaining == 0
    return "Retry-After" in response.headers


def quota_wait(response: httpx.Response) -> int:
    """Seconds until GitHub accepts requests again, between 1 and 300."""
    retry_after = _header_int(response, "Retry-After")
    if retry_after is not None:
        wait = retry_after
    else:
        reset = _header_int(response, "X-RateLimit-Reset")
        wait = reset - int(time.time()) if reset is not None else _FALLBACK_QUOTA_WAIT
    return min(max(wait, 1), _MAX_QUOTA_WAIT)


def _header_int(response: httpx.Response, name: str) -> int | None:
    try:
        return int(response.headers[name])
    except (KeyError, ValueError):
        return None
