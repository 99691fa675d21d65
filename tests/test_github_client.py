"""Tests for the GitHub commit enrichment client."""

import asyncio

import httpx
import pytest

from app.schemas.messages import CommitDetails, LineStats
from app.schemas.webhooks import PushWebhookPayload
from app.services.github_client import (
    GitHubEnricher,
    InMemoryEnricher,
    NullEnricher,
    enrich_push,
    fetch_commit_details,
    parse_commit_details,
)
from helpers import make_push_payload

COMMIT_BODY = {
    "sha": "abc1234",
    "stats": {"additions": 10, "deletions": 3, "total": 13},
    "files": [
        {"filename": "x.py", "status": "added"},
        {"filename": "y.js", "status": "modified"},
        {"filename": "z.md", "status": "renamed"},
        {"filename": "gone.txt", "status": "removed"},
    ],
}


@pytest.mark.asyncio
async def test_fetch_commit_details_success() -> None:
    """A 200 response yields stats and categorised files."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=COMMIT_BODY)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        details = await fetch_commit_details(client, "owner", "repo", "abc1234", "ghp_token")

    assert details is not None
    assert details.stats == LineStats(additions=10, deletions=3, total=13)
    assert details.files is not None
    assert details.files.added == ["x.py"]
    assert details.files.modified == ["y.js", "z.md"]
    assert details.files.removed == ["gone.txt"]


@pytest.mark.asyncio
async def test_fetch_commit_details_sends_correct_request() -> None:
    """The request targets the commit endpoint with bearer auth and API headers."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=COMMIT_BODY)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await fetch_commit_details(
            client, "myorg", "myrepo", "deadbeef", "ghp_secret", api_base="https://ghe.test/api/v3/"
        )

    assert len(captured) == 1
    req = captured[0]
    assert str(req.url) == "https://ghe.test/api/v3/repos/myorg/myrepo/commits/deadbeef"
    assert req.headers["authorization"] == "Bearer ghp_secret"
    assert req.headers["accept"] == "application/vnd.github+json"
    assert req.headers["x-github-api-version"] == "2022-11-28"


@pytest.mark.asyncio
async def test_fetch_without_token_is_unauthenticated() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=COMMIT_BODY)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await fetch_commit_details(client, "owner", "repo", "abc1234", "")

    assert "authorization" not in captured[0].headers


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [403, 404, 500])
async def test_fetch_commit_details_error_status_returns_none(status_code: int) -> None:
    """Non-2xx responses, including rate limiting, yield None instead of raising."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code,
            json={"message": "nope"},
            headers={"x-ratelimit-remaining": "0"},
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        details = await fetch_commit_details(client, "owner", "repo", "abc1234", "ghp_token")

    assert details is None


@pytest.mark.asyncio
async def test_fetch_commit_details_network_error_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        details = await fetch_commit_details(client, "owner", "repo", "abc1234", "ghp_token")

    assert details is None


@pytest.mark.asyncio
async def test_fetch_commit_details_bad_body_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        details = await fetch_commit_details(client, "owner", "repo", "abc1234", "ghp_token")

    assert details is None


def test_parse_commit_details_without_stats_or_files() -> None:
    assert parse_commit_details({"sha": "abc"}) == CommitDetails()


@pytest.mark.asyncio
async def test_enrich_push_keeps_event_order() -> None:
    """Results are keyed in event order even when later commits finish first."""
    event = PushWebhookPayload.model_validate(make_push_payload(num_commits=3))
    first, second, third = (c.id for c in event.commits)
    delays = {first: 0.03, second: 0.0, third: 0.01}

    class SlowEnricher:
        async def fetch(self, owner: str, repo: str, sha: str) -> CommitDetails | None:
            await asyncio.sleep(delays[sha])
            return CommitDetails(stats=LineStats(additions=1, deletions=0, total=1))

    enrichment = await enrich_push(SlowEnricher(), event)

    assert list(enrichment) == [first, second, third]


@pytest.mark.asyncio
async def test_github_enricher_uses_owner_and_repo() -> None:
    captured: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request.url.path)
        return httpx.Response(200, json=COMMIT_BODY)

    event = PushWebhookPayload.model_validate(make_push_payload(num_commits=2))
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        enricher = GitHubEnricher(client, "ghp_token", concurrency=1)
        enrichment = await enrich_push(enricher, event)

    assert sorted(captured) == sorted(
        f"/repos/testuser/my-repo/commits/{c.id}" for c in event.commits
    )
    assert all(details is not None for details in enrichment.values())


@pytest.mark.asyncio
async def test_in_memory_and_null_enrichers() -> None:
    canned = CommitDetails(stats=LineStats(additions=1, deletions=1, total=2))
    enricher = InMemoryEnricher({"abc1234": canned})

    assert await enricher.fetch("o", "r", "abc1234") == canned
    assert await enricher.fetch("o", "r", "missing") is None
    assert enricher.calls == [("o", "r", "abc1234"), ("o", "r", "missing")]
    assert await NullEnricher().fetch("o", "r", "abc1234") is None
