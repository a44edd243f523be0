"""Tests for GitHubClient and GitHubRepositorySource (httpx.MockTransport, no network)."""

from __future__ import annotations

import base64
import time
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from scansentinel.engines.scan_pipeline.errors import RateLimitError
from scansentinel.engines.scan_pipeline.github_client import (
    GitHubClient,
    is_rate_limited,
    quota_wait,
)
from scansentinel.engines.scan_pipeline.github_source import GitHubRepositorySource


def _client(handler) -> GitHubClient:
    return GitHubClient(token="t0ken", transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def _no_sleep():
    with patch(
        "scansentinel.engines.scan_pipeline.github_client.asyncio.sleep", new=AsyncMock()
    ) as sleep:
        yield sleep


class TestRepositorySource:
    async def test_list_directory(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[
                    {"name": "src", "path": "src", "type": "dir"},
                    {"name": "a.py", "path": "a.py", "type": "file"},
                    {"name": "lib", "path": "lib", "type": "submodule"},
                ],
            )

        async with _client(handler) as client:
            entries = await GitHubRepositorySource(client).list_directory("org/repo", "", "dev")

        assert [(e.name, e.kind) for e in entries] == [
            ("src", "dir"),
            ("a.py", "file"),
            ("lib", "submodule"),
        ]
        assert seen[0].url.path == "/repos/org/repo/contents"
        assert seen[0].url.params["ref"] == "dev"
        assert seen[0].headers["Authorization"] == "token t0ken"

    async def test_list_subdirectory_path(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=[])

        async with _client(handler) as client:
            await GitHubRepositorySource(client).list_directory(
                "https://github.com/org/repo", "src/lib", "main"
            )

        assert seen == ["/repos/org/repo/contents/src/lib"]

    async def test_list_directory_on_file(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"type": "file", "name": "a.py"})

        async with _client(handler) as client:
            with pytest.raises(ValueError, match="not a directory"):
                await GitHubRepositorySource(client).list_directory("org/repo", "a.py", "main")

    async def test_get_file_content_base64(self):
        body = "print('hello')\n"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "encoding": "base64",
                    "content": base64.b64encode(body.encode()).decode(),
                },
            )

        async with _client(handler) as client:
            content = await GitHubRepositorySource(client).get_file_content(
                "org/repo", "a.py", "main"
            )

        assert content == body

    async def test_get_file_content_on_directory(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        async with _client(handler) as client:
            with pytest.raises(ValueError, match="not a file"):
                await GitHubRepositorySource(client).get_file_content("org/repo", "src", "main")

    async def test_get_file_content_too_large(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"type": "file", "encoding": "none", "content": "", "size": 2_500_000},
            )

        async with _client(handler) as client:
            with pytest.raises(ValueError, match="too large"):
                await GitHubRepositorySource(client).get_file_content(
                    "org/repo", "dump.sql.py", "main"
                )

    async def test_dominant_language(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/org/repo/languages"
            return httpx.Response(200, json={"Shell": 300, "Python": 9000, "C": 120})

        async with _client(handler) as client:
            assert await GitHubRepositorySource(client).dominant_language("org/repo") == "Python"

    async def test_dominant_language_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        async with _client(handler) as client:
            assert await GitHubRepositorySource(client).dominant_language("org/repo") == ""


class TestGitHubClient:
    async def test_not_found_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Not Found"})

        async with _client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("/repos/org/missing/languages")

    async def test_retries_server_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            if len(calls) < 3:
                return httpx.Response(502)
            return httpx.Response(200, json={"ok": True})

        async with _client(handler) as client:
            assert await client.get("/x") == {"ok": True}
        assert len(calls) == 3

    async def test_gives_up_after_retries(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with _client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("/x")

    async def test_rate_limited_response_raises_without_sleeping(self, _no_sleep):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(403, headers={"X-RateLimit-Remaining": "0", "Retry-After": "5"})

        async with _client(handler) as client:
            with pytest.raises(RateLimitError) as info:
                await client.get("/x")

        assert info.value.retry_after == 5
        assert len(calls) == 1
        _no_sleep.assert_not_awaited()

    async def test_exhausted_quota_returns_answer_then_gates_next_call(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(
                200,
                json=[],
                headers={
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(time.time()) + 30),
                },
            )

        async with _client(handler) as client:
            assert await client.get("/x") == []
            with pytest.raises(RateLimitError) as info:
                await client.get("/y")

        assert len(calls) == 1
        assert 1 <= info.value.retry_after <= 31

    def test_quota_wait_capped(self):
        response = httpx.Response(429, headers={"Retry-After": "100000"})
        assert quota_wait(response) == 300

    def test_forbidden_without_rate_limit_headers(self):
        response = httpx.Response(403, headers={"X-RateLimit-Remaining": "12"})
        assert not is_rate_limited(response)
