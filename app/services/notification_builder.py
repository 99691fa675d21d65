"""Build Discord embed messages from GitHub push and issue events.

A push produces one base message (repository, branch, files changed, recent
commits, line changes, most used language) followed by the file-category
fields. Each file field is appended to the base message while its serialized
fields stay under FIELD_BLOCK_THRESHOLD bytes and the whole message under
MESSAGE_SIZE_LIMIT; past that it becomes a secondary message of its own.
Paths beyond the per-field listing continue in further fields, so every path
appears exactly once across the emitted messages.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from app.schemas.messages import (
    CommitDetails,
    EmbedAuthor,
    EmbedField,
    EmbedFooter,
    EmbedImage,
    FileChanges,
    LineStats,
    OutboundMessage,
)
from app.schemas.webhooks import (
    Commit,
    IssuesWebhookPayload,
    PushWebhookPayload,
    SupportedEvent,
)
from app.services.embed_limits import (
    DESCRIPTION_LIMIT,
    FIELD_BLOCK_THRESHOLD,
    FIELD_VALUE_LIMIT,
    MESSAGE_SIZE_LIMIT,
    clamp_message,
    serialized_size,
    truncate,
)
from app.services.languages import DEFAULT_LANGUAGES, language_icon_url, tally_languages

logger = structlog.get_logger()

GITHUB_URL = "https://github.com"
UNKNOWN = "Unknown"

MAX_LISTED_COMMITS = 10
MAX_LISTED_FILES = 10
COMMIT_TITLE_LIMIT = 100

FILE_CATEGORIES = (
    ("added", "Added Files"),
    ("modified", "Modified Files"),
    ("removed", "Removed Files"),
)


class InvalidEventError(ValueError):
    """Raised when an event reaching the builder is structurally unusable."""


@dataclass(frozen=True)
class BuilderOptions:
    """Presentation settings for built messages."""

    title: str = ""
    color: int = 0x0099FF
    icon_template: str = ""
    icon_fallback: str = ""


def _more_suffix(count: int) -> str:
    return f"...and {count} more"


def _profile(username: str | None) -> tuple[str | None, str | None]:
    """Return (profile URL, avatar URL) for a GitHub username."""
    if not username:
        return None, None
    return f"{GITHUB_URL}/{username}", f"{GITHUB_URL}/{username}.png"


def aggregate_files(
    commits: Sequence[Commit], enrichment: Mapping[str, CommitDetails | None]
) -> FileChanges:
    """Merge per-commit file lists, first-seen order, without duplicates.

    A commit's fetched file list replaces the one carried in the event.
    """
    seen: dict[str, dict[str, None]] = {key: {} for key, _ in FILE_CATEGORIES}
    for commit in commits:
        details = enrichment.get(commit.id)
        source: FileChanges | Commit = details.files if details and details.files else commit
        for key, _ in FILE_CATEGORIES:
            for path in getattr(source, key):
                seen[key].setdefault(path, None)
    return FileChanges(**{key: list(paths) for key, paths in seen.items()})


def sum_line_stats(
    commits: Sequence[Commit], enrichment: Mapping[str, CommitDetails | None]
) -> LineStats | None:
    """Add up fetched stats; commits without stats count as zero.

    Returns None when no commit had stats at all.
    """
    total = LineStats()
    found = False
    for commit in commits:
        details = enrichment.get(commit.id)
        if details is None or details.stats is None:
            if enrichment:
                logger.info("commit_stats_missing", sha=commit.short_id)
            continue
        total = total + details.stats
        found = True
    return total if found else None


def format_commit_list(commits: Sequence[Commit]) -> str:
    """Render up to MAX_LISTED_COMMITS commits, one per line, in event order.

    Commit titles are cut to COMMIT_TITLE_LIMIT characters, and further if
    the whole list would not fit in one field value.
    """
    listed = commits[:MAX_LISTED_COMMITS]
    remaining = len(commits) - len(listed)
    suffix = _more_suffix(remaining) if remaining else ""

    def render(title_limit: int) -> str:
        lines = [f"`{c.short_id}`: {truncate(c.title, title_limit)}" for c in listed]
        if suffix:
            lines.append(suffix)
        return "\n".join(lines)

    value = render(COMMIT_TITLE_LIMIT)
    if len(value) > FIELD_VALUE_LIMIT:
        prefixes = sum(len(f"`{c.short_id}`: ") for c in listed)
        separators = len(listed) - 1 + (len(suffix) + 1 if suffix else 0)
        per_line = (FIELD_VALUE_LIMIT - prefixes - separators) // len(listed)
        value = render(max(per_line, 4))
    return value


def chunk_paths(paths: Sequence[str]) -> list[list[str]]:
    """Split paths into groups of at most MAX_LISTED_FILES that fit one field.

    A group also stops growing when its rendered value, with room for the
    ``...and N more`` line, would exceed FIELD_VALUE_LIMIT.
    """
    reserve = len("\n" + _more_suffix(len(paths)))
    chunks: list[list[str]] = []
    current: list[str] = []
    length = 0
    for path in paths:
        line_len = len(path) + 2 + (1 if current else 0)
        if current and (
            len(current) >= MAX_LISTED_FILES or length + line_len + reserve > FIELD_VALUE_LIMIT
        ):
            chunks.append(current)
            current, length = [], 0
            line_len = len(path) + 2
        current.append(path)
        length += line_len
    if current:
        chunks.append(current)
    return chunks


def file_fields(label: str, paths: Sequence[str]) -> list[EmbedField]:
    """Build the field(s) listing one file category.

    The first field is named ``label``; continuation fields are named
    ``label (cont.)``. Each non-final field ends with ``...and N more``.
    """
    chunks = chunk_paths(paths)
    fields: list[EmbedField] = []
    listed = 0
    for index, chunk in enumerate(chunks):
        listed += len(chunk)
        lines = [f"`{path}`" for path in chunk]
        if listed < len(paths):
            lines.append(_more_suffix(len(paths) - listed))
        name = label if index == 0 else f"{label} (cont.)"
        fields.append(EmbedField(name=name, value="\n".join(lines)))
    return fields


class NotificationBuilder:
    """Turns accepted webhook events into ordered outbound messages."""

    def __init__(
        self,
        options: BuilderOptions | None = None,
        languages: Mapping[str, str] = DEFAULT_LANGUAGES,
    ) -> None:
        self.options = options or BuilderOptions()
        self.languages = languages

    def build(
        self,
        event: SupportedEvent,
        enrichment: Mapping[str, CommitDetails | None] | None = None,
    ) -> list[OutboundMessage]:
        """Return at least one message for ``event``, each within embed limits."""
        if isinstance(event, IssuesWebhookPayload):
            messages = [self._issue_message(event)]
        else:
            messages = self._push_messages(event, enrichment or {})
        return [clamp_message(m) for m in messages]

    # -- push -----------------------------------------------------------------

    def _push_messages(
        self, event: PushWebhookPayload, enrichment: Mapping[str, CommitDetails | None]
    ) -> list[OutboundMessage]:
        if not event.commits:
            raise InvalidEventError("push event has no commits")
        if not event.repository.full_name:
            raise InvalidEventError("push event has no repository")

        commits = event.commits
        head = event.head_commit or commits[-1]
        files = aggregate_files(commits, enrichment)
        tally = tally_languages(files.added + files.modified, self.languages)
        language = tally.most_used()
        stats = sum_line_stats(commits, enrichment)

        base = OutboundMessage(
            title=self._push_title(event),
            description=self._push_description(event),
            url=event.compare or head.url,
            color=self.options.color,
            author=self._push_author(event, head),
            timestamp=head.timestamp,
            footer=self._push_footer(head, language),
            fields=[
                EmbedField(name="Repository", value=event.repository.full_name, inline=True),
                EmbedField(name="Branch", value=event.branch or UNKNOWN, inline=True),
                EmbedField(name="Files Changed", value=str(files.total), inline=True),
                EmbedField(name="Recent Commits", value=format_commit_list(commits)),
            ],
        )
        if stats is not None:
            base.fields.append(
                EmbedField(
                    name="Line Changes",
                    value=f"+{stats.additions} -{stats.deletions} ({stats.total} total)",
                    inline=True,
                )
            )
        if language is not None:
            name, count = language
            plural = "file" if count == 1 else "files"
            base.fields.append(
                EmbedField(name="Most Used Language", value=f"{name} ({count} {plural})", inline=True)
            )
        icon = self._icon(language)
        if icon:
            base.thumbnail = EmbedImage(url=icon)

        messages = [base]
        for key, label in FILE_CATEGORIES:
            paths = getattr(files, key)
            if not paths:
                continue
            for candidate in file_fields(label, paths):
                grown = base.model_copy(update={"fields": [*base.fields, candidate]})
                fits = (
                    serialized_size(grown.fields) < FIELD_BLOCK_THRESHOLD
                    and serialized_size(grown) < MESSAGE_SIZE_LIMIT
                )
                if fits:
                    base.fields.append(candidate)
                else:
                    messages.append(self._secondary_message(event, candidate))

        logger.info(
            "notification_built",
            repository=event.repository.full_name,
            commits=len(commits),
            messages=len(messages),
        )
        return messages

    def _push_title(self, event: PushWebhookPayload) -> str:
        if self.options.title:
            return self.options.title
        count = len(event.commits)
        noun = "commit" if count == 1 else "commits"
        return f"[{event.repository.name}:{event.branch}] {count} new {noun}"

    def _push_description(self, event: PushWebhookPayload) -> str:
        if len(event.commits) == 1:
            return truncate(event.commits[0].message.strip(), DESCRIPTION_LIMIT) or UNKNOWN
        actor = self._actor_name(event, event.commits[-1])
        return f"{actor} pushed {len(event.commits)} commits to `{event.branch}`."

    @staticmethod
    def _actor_name(event: PushWebhookPayload, head: Commit) -> str:
        if event.sender:
            return event.sender.login
        if event.pusher and event.pusher.name:
            return event.pusher.name
        return head.author.username or head.author.name or UNKNOWN

    def _push_author(self, event: PushWebhookPayload, head: Commit) -> EmbedAuthor:
        username = event.sender.login if event.sender else head.author.username
        url, avatar = _profile(username)
        if event.sender and event.sender.avatar_url:
            avatar = event.sender.avatar_url
        return EmbedAuthor(name=self._actor_name(event, head), url=url, icon_url=avatar)

    @staticmethod
    def _push_footer(head: Commit, language: tuple[str, int] | None) -> EmbedFooter:
        text = f"Commit {head.short_id}"
        if language is not None:
            text += f" • {language[0]}"
        return EmbedFooter(text=text)

    def _icon(self, language: tuple[str, int] | None) -> str:
        name = language[0] if language else None
        return language_icon_url(name, self.options.icon_template, self.options.icon_fallback)

    def _secondary_message(
        self, event: PushWebhookPayload, field: EmbedField
    ) -> OutboundMessage:
        return OutboundMessage(
            title=f"{field.name} (continued)",
            description=f"More changes in {event.repository.full_name} on `{event.branch}`.",
            color=self.options.color,
            fields=[field],
        )

    # -- issues ---------------------------------------------------------------

    def _issue_message(self, event: IssuesWebhookPayload) -> OutboundMessage:
        if not event.repository.full_name:
            raise InvalidEventError("issues event has no repository")

        issue = event.issue
        url, avatar = _profile(issue.user.login)
        fields = [EmbedField(name="Repository", value=event.repository.full_name, inline=True)]
        if issue.labels:
            fields.append(
                EmbedField(
                    name="Labels",
                    value=", ".join(label.name for label in issue.labels),
                    inline=True,
                )
            )
        return OutboundMessage(
            title=f"Issue opened: #{issue.number} {issue.title}",
            description=truncate((issue.body or "").strip(), DESCRIPTION_LIMIT) or None,
            url=issue.html_url,
            color=self.options.color,
            author=EmbedAuthor(
                name=issue.user.login,
                url=issue.user.html_url or url,
                icon_url=issue.user.avatar_url or avatar,
            ),
            timestamp=issue.created_at,
            footer=EmbedFooter(text=f"Issue #{issue.number}"),
            fields=fields,
        )

