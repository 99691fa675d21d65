"""GitHub REST API client for per-commit enrichment (line stats and file lists).

Production code uses ``GitHubEnricher`` which wraps ``fetch_commit_details``
with a shared ``httpx.AsyncClient`` and bounded concurrency. Tests use
``InMemoryEnricher`` which returns canned details without network access.

Enrichment is best effort: every failure becomes ``None`` for that commit so
a single bad API response never aborts the whole notification.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Protocol

import httpx
import structlog
from pydantic import ValidationError

from app.schemas.messages import CommitDetails, FileChanges, LineStats
from app.schemas.webhooks import PushWebhookPayload

logger = structlog.get_logger()

_GITHUB_HEADERS_BASE = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

# GitHub file statuses folded into the three summary categories.
_STATUS_CATEGORY = {
    "added": "added",
    "copied": "added",
    "modified": "modified",
    "changed": "modified",
    "renamed": "modified",
    "removed": "removed",
}

Enrichment = Mapping[str, CommitDetails | None]


def _auth_headers(token: str) -> dict[str, str]:
    """Build GitHub API headers, with Bearer auth when a token is configured."""
    if not token:
        return dict(_GITHUB_HEADERS_BASE)
    return {**_GITHUB_HEADERS_BASE, "Authorization": f"Bearer {token}"}


def parse_commit_details(data: Mapping) -> CommitDetails:
    """Convert a ``GET /repos/{owner}/{repo}/commits/{sha}`` body into ``CommitDetails``."""
    stats = None
    raw_stats = data.get("stats")
    if isinstance(raw_stats, Mapping):
        stats = LineStats.model_validate(raw_stats)

    files = None
    raw_files = data.get("files")
    if isinstance(raw_files, list):
        files = FileChanges()
        for entry in raw_files:
            category = _STATUS_CATEGORY.get(entry.get("status", ""))
            filename = entry.get("filename")
            if category and filename:
                getattr(files, category).append(filename)
    return CommitDetails(stats=stats, files=files)


async def fetch_commit_details(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    sha: str,
    token: str,
    *,
    api_base: str = "https://api.github.com",
    timeout: float = 10.0,
) -> CommitDetails | None:
    """Fetch stats and changed files for one commit.

    Args:
        client: Shared httpx async client (for connection pooling).
        owner: Repository owner (user or organisation).
        repo: Repository name.
        sha: Commit id.
        token: GitHub token; requests are unauthenticated when empty.
        api_base: REST API root.
        timeout: Per-request timeout in seconds.

    Returns:
        The parsed details, or None on network errors, non-2xx responses
        (404, rate limiting) or an unexpected body.
    """
    url = f"{api_base.rstrip('/')}/repos/{owner}/{repo}/commits/{sha}"
    try:
        resp = await client.get(url, headers=_auth_headers(token), timeout=timeout)
    except httpx.HTTPError as exc:
        logger.warning("commit_fetch_failed", sha=sha, error=type(exc).__name__)
        return None

    if resp.status_code != 200:
        logger.warning(
            "commit_fetch_failed",
            sha=sha,
            status_code=resp.status_code,
            rate_limit_remaining=resp.headers.get("x-ratelimit-remaining"),
        )
        return None

    try:
        return parse_commit_details(resp.json())
    except (ValueError, AttributeError, ValidationError):
        logger.warning("commit_fetch_unparsable", sha=sha)
        return None


class Enricher(Protocol):
    """Protocol for fetching per-commit details."""

    async def fetch(self, owner: str, repo: str, sha: str) -> CommitDetails | None:
        """Return details for one commit, or None when unavailable."""
        ...


class GitHubEnricher:
    """Production enricher backed by the GitHub REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        *,
        api_base: str = "https://api.github.com",
        timeout: float = 10.0,
        concurrency: int = 4,
    ) -> None:
        self._client = client
        self._token = token
        self._api_base = api_base
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(max(concurrency, 1))

    async def fetch(self, owner: str, repo: str, sha: str) -> CommitDetails | None:
        async with self._semaphore:
            return await fetch_commit_details(
                self._client,
                owner,
                repo,
                sha,
                self._token,
                api_base=self._api_base,
                timeout=self._timeout,
            )


class NullEnricher:
    """Enricher used when enrichment is disabled."""

    async def fetch(self, owner: str, repo: str, sha: str) -> CommitDetails | None:
        return None


class InMemoryEnricher:
    """Test double that returns canned details and records requested commits."""

    def __init__(self, details: Mapping[str, CommitDetails | None] | None = None) -> None:
        self.details: dict[str, CommitDetails | None] = dict(details or {})
        self.calls: list[tuple[str, str, str]] = []

    async def fetch(self, owner: str, repo: str, sha: str) -> CommitDetails | None:
        self.calls.append((owner, repo, sha))
        return self.details.get(sha)


async def enrich_push(enricher: Enricher, event: PushWebhookPayload) -> Enrichment:
    """Fetch details for every commit in ``event`` concurrently.

    The result is keyed by commit id in event order, regardless of which
    request completed first.
    """
    owner = event.repository.owner_login
    repo = event.repository.name
    results = await asyncio.gather(
        *(enricher.fetch(owner, repo, commit.id) for commit in event.commits)
    )
    return {commit.id: details for commit, details in zip(event.commits, results)}
