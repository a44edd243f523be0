"""GitHubRepositorySource — RepositorySource backed by the GitHub contents API."""

from __future__ import annotations

import base64
from urllib.parse import quote

from scansentinel.core.github import normalize_target
from scansentinel.engines.scan_pipeline.github_client import GitHubClient
from scansentinel.engines.scan_pipeline.models import DirectoryEntry


class GitHubRepositorySource:
    """List directories, fetch files, and look up the main language of a repo."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def list_directory(self, target: str, path: str, ref: str) -> list[DirectoryEntry]:
        data = await self._client.get(self._contents_path(target, path), params={"ref": ref})
        if not isinstance(data, list):
            # The contents API answers with a single object when *path* is a file.
            raise ValueError(f"{path or '/'} is not a directory")
        return [
            DirectoryEntry(name=item["name"], path=item["path"], kind=item["type"])
            for item in data
        ]

    async def get_file_content(self, target: str, path: str, ref: str) -> str:
        data = await self._client.get(self._contents_path(target, path), params={"ref": ref})
        if not isinstance(data, dict) or data.get("type") != "file":
            raise ValueError(f"{path} is not a file")
        if data.get("encoding") == "none":
            # files over 1 MB come back without inline content
            raise ValueError(f"{path} is too large to fetch ({data.get('size', '?')} bytes)")
        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8", errors="replace")
        return content

    async def dominant_language(self, target: str) -> str:
        """Language with the most bytes according to GitHub, ``""`` if none."""
        data = await self._client.get(f"/repos/{normalize_target(target)}/languages")
        if not data:
            return ""
        # ties go to the language GitHub lists first
        return max(data, key=lambda lang: data[lang])

    @staticmethod
    def _contents_path(target: str, path: str) -> str:
        repo = normalize_target(target)
        if not path:
            return f"/repos/{repo}/contents"
        return f"/repos/{repo}/contents/{quote(path)}"
