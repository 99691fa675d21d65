"""Pydantic models for GitHub webhook deliveries and payloads."""

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field


class WebhookEnvelope(BaseModel):
    """One inbound delivery: raw body bytes, headers and declared event type.

    Header names are stored lower-cased so lookups are case-insensitive.
    """

    model_config = ConfigDict(frozen=True)

    raw_body: bytes
    headers: Mapping[str, str] = Field(default_factory=dict)
    event_type: str = ""

    @classmethod
    def from_parts(cls, raw_body: bytes, headers: Mapping[str, str]) -> "WebhookEnvelope":
        """Build an envelope, normalising header names and reading ``X-GitHub-Event``."""
        lowered = {name.lower(): value for name, value in headers.items()}
        return cls(
            raw_body=raw_body,
            headers=lowered,
            event_type=lowered.get("x-github-event", ""),
        )

    def header(self, name: str) -> str | None:
        """Return a header value regardless of the caller's casing."""
        return self.headers.get(name.lower())


class CommitAuthor(BaseModel):
    """Author information from a Git commit."""

    name: str = "Unknown"
    email: str | None = None
    username: str | None = None


class Commit(BaseModel):
    """A single commit within a GitHub push event."""

    id: str = Field(min_length=7)
    message: str = ""
    timestamp: str | None = None
    url: str | None = None
    author: CommitAuthor = Field(default_factory=CommitAuthor)
    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def short_id(self) -> str:
        return self.id[:7]

    @property
    def title(self) -> str:
        """First line of the commit message."""
        lines = self.message.strip().splitlines()
        return lines[0] if lines else ""


class RepositoryOwner(BaseModel):
    """Owner of the repository (user or organization)."""

    login: str | None = None
    name: str | None = None


class Repository(BaseModel):
    """Repository metadata from the webhook payload."""

    name: str = Field(min_length=1)
    full_name: str = Field(min_length=1)
    owner: RepositoryOwner
    html_url: str | None = None

    @property
    def owner_login(self) -> str:
        return self.owner.login or self.owner.name or self.full_name.split("/", 1)[0]


class Sender(BaseModel):
    """The GitHub account that triggered the delivery."""

    login: str
    avatar_url: str | None = None
    html_url: str | None = None


class Pusher(BaseModel):
    name: str | None = None
    email: str | None = None


class PushWebhookPayload(BaseModel):
    """GitHub push webhook event payload.

    Reference: https://docs.github.com/en/webhooks/webhook-events-and-payloads#push
    """

    ref: str
    repository: Repository
    commits: list[Commit] = Field(default_factory=list)
    head_commit: Commit | None = None
    sender: Sender | None = None
    pusher: Pusher | None = None
    compare: str | None = None
    created: bool = False
    deleted: bool = False
    forced: bool = False

    @property
    def branch(self) -> str:
        """Ref name without its ``refs/heads/`` or ``refs/tags/`` prefix."""
        for prefix in ("refs/heads/", "refs/tags/"):
            if self.ref.startswith(prefix):
                return self.ref[len(prefix):]
        return self.ref


class IssueUser(BaseModel):
    login: str
    avatar_url: str | None = None
    html_url: str | None = None


class IssueLabel(BaseModel):
    name: str


class Issue(BaseModel):
    """The issue object embedded in an ``issues`` event."""

    number: int
    title: str
    body: str | None = None
    html_url: str | None = None
    user: IssueUser
    created_at: str | None = None
    labels: list[IssueLabel] = Field(default_factory=list)


class IssuesWebhookPayload(BaseModel):
    """GitHub issues webhook event payload (only ``opened`` is relayed).

    Reference: https://docs.github.com/en/webhooks/webhook-events-and-payloads#issues
    """

    action: str
    issue: Issue
    repository: Repository
    sender: Sender | None = None


SupportedEvent = PushWebhookPayload | IssuesWebhookPayload
