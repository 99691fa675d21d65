"""Payload builders and signing helpers shared by the test modules."""

import hashlib
import hmac

from app.schemas.messages import OutboundMessage


def sign(body: bytes, secret: str) -> str:
    """Compute the GitHub-style HMAC-SHA256 signature for a payload."""
    digest = hmac.new(
        secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"sha256={digest}"


def make_commit(
    index: int,
    *,
    message: str | None = None,
    added: list[str] | None = None,
    modified: list[str] | None = None,
    removed: list[str] | None = None,
) -> dict:
    """Build one commit object as it appears in a push payload."""
    sha = f"{index:07d}" + "a" * 33
    return {
        "id": sha,
        "message": message if message is not None else f"commit {index}\n\nbody text",
        "timestamp": f"2026-02-07T12:{index % 60:02d}:00Z",
        "url": f"https://github.com/testuser/my-repo/commit/{sha}",
        "author": {"name": "Test User", "email": "test@example.com", "username": "testuser"},
        "added": added or [],
        "modified": modified or [],
        "removed": removed or [],
    }


def make_push_payload(*, commits: list[dict] | None = None, num_commits: int = 1) -> dict:
    """Build a realistic GitHub push webhook payload."""
    if commits is None:
        commits = [make_commit(i, added=[f"file{i}.py"]) for i in range(num_commits)]
    return {
        "ref": "refs/heads/main",
        "before": "0000000000000000000000000000000000000000",
        "after": commits[-1]["id"] if commits else "0" * 40,
        "compare": "https://github.com/testuser/my-repo/compare/abc...def",
        "repository": {
            "id": 12345,
            "name": "my-repo",
            "full_name": "testuser/my-repo",
            "owner": {"login": "testuser", "name": "Test User"},
            "html_url": "https://github.com/testuser/my-repo",
        },
        "sender": {
            "login": "testuser",
            "avatar_url": "https://avatars.githubusercontent.com/u/1",
            "html_url": "https://github.com/testuser",
        },
        "pusher": {"name": "testuser", "email": "test@example.com"},
        "commits": commits,
        "head_commit": commits[-1] if commits else None,
        "created": False,
        "deleted": False,
        "forced": False,
    }


def make_issue_payload(*, action: str = "opened") -> dict:
    """Build a GitHub issues webhook payload."""
    return {
        "action": action,
        "issue": {
            "number": 42,
            "title": "Crash on startup",
            "body": "Steps to reproduce:\n1. start the app",
            "html_url": "https://github.com/testuser/my-repo/issues/42",
            "user": {"login": "reporter", "avatar_url": "https://avatars.test/reporter"},
            "created_at": "2026-02-07T12:00:00Z",
            "labels": [{"name": "bug"}, {"name": "p1"}],
        },
        "repository": {
            "name": "my-repo",
            "full_name": "testuser/my-repo",
            "owner": {"login": "testuser"},
        },
        "sender": {"login": "reporter"},
    }


def field_map(message: OutboundMessage) -> dict[str, str]:
    """Map field names to values for one message."""
    return {f.name: f.value for f in message.fields}


def listed_paths(messages: list[OutboundMessage]) -> list[str]:
    """Every backtick-quoted path listed in the file fields of ``messages``."""
    paths: list[str] = []
    for message in messages:
        for field in message.fields:
            if not field.name.endswith(("Files", "Files (cont.)")):
                continue
            for line in field.value.splitlines():
                if line.startswith("`") and line.endswith("`"):
                    paths.append(line[1:-1])
    return paths
