"""
GitHub REST API source fetcher.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Tuple
from urllib.parse import quote

import httpx

from codeask.config import settings
from codeask.errors import NotFoundError, ValidationError
from codeask.models.entities import Repository
from codeask.sources.base import RepositoryInfo, SourceCommit, SourceFile, is_text_path, language_for_path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15.0

_URL_PATTERNS = (
    re.compile(r"^https?://(?:www\.)?github\.com/(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+?)(?:\.git)?/?$"),
    re.compile(r"^git@github\.com:(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+?)(?:\.git)?$"),
    re.compile(r"^(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+)$"),
)


def parse_repository_url(url: str) -> Tuple[str, str]:
    """Return ``(owner, repo)`` for a GitHub URL, SSH remote or ``owner/repo`` shorthand."""
    candidate = (url or "").strip()
    for pattern in _URL_PATTERNS:
        match = pattern.match(candidate)
        if match:
            return match.group("owner"), match.group("repo")
    raise ValidationError("Invalid GitHub repository URL", field="url", details={"url": url})


class GitHubSourceFetcher:
    def __init__(
        self,
        token: str | None = None,
        api_url: str = settings.github_api_url,
        max_file_size: int = settings.max_file_size_bytes,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if token is None and settings.github_token:
            token = settings.github_token.get_secret_value()
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.max_file_size = max_file_size
        self.timeout = timeout
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), follow_redirects=True) as client:
            yield client

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, client: httpx.AsyncClient, path: str, params: Dict[str, Any] | None = None) -> Any:
        response = await client.get(f"{self.api_url}{path}", params=params, headers=self._headers())
        response.raise_for_status()
        return response.json()

    async def resolve(self, url: str) -> RepositoryInfo:
        owner, repo = parse_repository_url(url)
        async with self._session() as client:
            try:
                data = await self._get(client, f"/repos/{owner}/{repo}")
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 404:
                    raise NotFoundError(f"GitHub repository not found: {owner}/{repo}", {"url": url}) from exc
                raise
        return RepositoryInfo(
            name=data.get("name") or repo,
            full_name=data.get("full_name") or f"{owner}/{repo}",
            description=data.get("description"),
            language=data.get("language"),
        )

    async def fetch_files(self, repository: Repository) -> List[SourceFile]:
        owner, repo = parse_repository_url(repository.url)
        files: List[SourceFile] = []
        async with self._session() as client:
            tree = await self._get(client, f"/repos/{owner}/{repo}/git/trees/HEAD", params={"recursive": "1"})
            for item in tree.get("tree", []):
                path = item.get("path")
                if item.get("type") != "blob" or not path:
                    continue
                if (item.get("size") or 0) > self.max_file_size or not is_text_path(path):
                    continue
                try:
                    data = await self._get(client, f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}")
                except httpx.HTTPError as exc:
                    logger.warning("Failed to fetch file", extra={"path": path, "error": str(exc)})
                    continue
                encoded = data.get("content") if isinstance(data, dict) else None
                if not encoded:
                    continue
                content = base64.b64decode(encoded).decode("utf-8", errors="replace")
                files.append(
                    SourceFile(
                        path=path,
                        content=content,
                        size=item.get("size") or len(content),
                        language=language_for_path(path),
                    )
                )

        logger.info("Fetched repository files", extra={"repository": f"{owner}/{repo}", "files": len(files)})
        return files

    async def fetch_commits(self, repository: Repository, limit: int) -> List[SourceCommit]:
        if limit <= 0:
            return []
        owner, repo = parse_repository_url(repository.url)
        async with self._session() as client:
            listing = await self._get(client, f"/repos/{owner}/{repo}/commits", params={"per_page": limit, "page": 1})
            stats = await asyncio.gather(
                *(self._commit_stats(client, owner, repo, item.get("sha", "")) for item in listing[:limit])
            )

        commits: List[SourceCommit] = []
        for item, (additions, deletions) in zip(listing[:limit], stats):
            detail = item.get("commit") or {}
            author = detail.get("author") or {}
            commits.append(
                SourceCommit(
                    sha=item.get("sha", ""),
                    message=detail.get("message", ""),
                    author=author.get("name") or "unknown",
                    author_email=author.get("email"),
                    date=_parse_date(author.get("date")),
                    additions=additions,
                    deletions=deletions,
                )
            )
        return commits

    async def _commit_stats(self, client: httpx.AsyncClient, owner: str, repo: str, sha: str) -> Tuple[int, int]:
        try:
            data = await self._get(client, f"/repos/{owner}/{repo}/commits/{sha}")
        except httpx.HTTPError as exc:
            logger.debug("Commit stats unavailable", extra={"sha": sha, "error": str(exc)})
            return 0, 0
        stats = data.get("stats") or {}
        return int(stats.get("additions") or 0), int(stats.get("deletions") or 0)


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


__all__ = ["GitHubSourceFetcher", "parse_repository_url"]
