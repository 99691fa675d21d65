"""Pydantic models for outbound Discord messages and commit enrichment data."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class EmbedAuthor(BaseModel):
    name: str
    url: str | None = None
    icon_url: str | None = None


class EmbedFooter(BaseModel):
    text: str
    icon_url: str | None = None


class EmbedField(BaseModel):
    """A named block inside an embed."""

    name: str
    value: str
    inline: bool = False


class EmbedImage(BaseModel):
    url: str


class OutboundMessage(BaseModel):
    """A bounded notification unit, rendered as one Discord embed."""

    title: str
    description: str | None = None
    url: str | None = None
    color: int | None = None
    author: EmbedAuthor | None = None
    timestamp: str | None = None
    footer: EmbedFooter | None = None
    fields: list[EmbedField] = Field(default_factory=list)
    thumbnail: EmbedImage | None = None

    def to_embed(self) -> dict[str, Any]:
        """Return the Discord embed JSON object, omitting unset values."""
        return self.model_dump(exclude_none=True)


class LineStats(BaseModel):
    """Line-change counts for one commit or an aggregate of commits."""

    additions: int = 0
    deletions: int = 0
    total: int = 0

    def __add__(self, other: LineStats) -> LineStats:
        return LineStats(
            additions=self.additions + other.additions,
            deletions=self.deletions + other.deletions,
            total=self.total + other.total,
        )


class FileChanges(BaseModel):
    """File paths touched by a commit, grouped by change category."""

    added: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of distinct paths across all categories."""
        return len({*self.added, *self.modified, *self.removed})


class CommitDetails(BaseModel):
    """Supplementary data for one commit fetched from the GitHub API.

    Either part may be missing when the API response lacked it.
    """

    stats: LineStats | None = None
    files: FileChanges | None = None
