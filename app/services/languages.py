"""File-extension language detection for push summaries.

The extension table is a read-only mapping passed into the notification
builder, so callers can substitute a smaller table.
"""

import os
import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

DEFAULT_LANGUAGES: Mapping[str, str] = MappingProxyType(
    {
        ".py": "Python",
        ".js": "JavaScript",
        ".mjs": "JavaScript",
        ".cjs": "JavaScript",
        ".jsx": "JavaScript",
        ".ts": "TypeScript",
        ".tsx": "TypeScript",
        ".java": "Java",
        ".kt": "Kotlin",
        ".go": "Go",
        ".rs": "Rust",
        ".rb": "Ruby",
        ".php": "PHP",
        ".c": "C",
        ".h": "C",
        ".cpp": "C++",
        ".cc": "C++",
        ".hpp": "C++",
        ".cs": "C#",
        ".swift": "Swift",
        ".scala": "Scala",
        ".dart": "Dart",
        ".lua": "Lua",
        ".sh": "Shell",
        ".html": "HTML",
        ".css": "CSS",
        ".scss": "Sass",
        ".vue": "Vue",
        ".sql": "SQL",
        ".md": "Markdown",
        ".json": "JSON",
        ".yml": "YAML",
        ".yaml": "YAML",
    }
)

# Language names whose icon slug is not just the lowercased name.
_ICON_SLUGS: Mapping[str, str] = MappingProxyType(
    {
        "C++": "cplusplus",
        "C#": "csharp",
        "Shell": "bash",
        "HTML": "html5",
        "CSS": "css3",
        "Vue": "vuejs",
        "Go": "go",
        "SQL": "azuresqldatabase",
    }
)


class LanguageTally:
    """Extension counts in first-seen order, resolved against a language table."""

    def __init__(self, table: Mapping[str, str]) -> None:
        self._table = table
        self.counts: dict[str, int] = {}

    def add(self, path: str) -> None:
        ext = os.path.splitext(path)[1].lower()
        if ext in self._table:
            self.counts[ext] = self.counts.get(ext, 0) + 1

    def most_used(self) -> tuple[str, int] | None:
        """Return ``(language, count)`` for the most frequent extension.

        Ties go to the extension that was seen first.
        """
        best_ext: str | None = None
        best_count = 0
        for ext, count in self.counts.items():
            if count > best_count:
                best_ext, best_count = ext, count
        if best_ext is None:
            return None
        return self._table[best_ext], best_count


def tally_languages(
    paths: Iterable[str], table: Mapping[str, str] = DEFAULT_LANGUAGES
) -> LanguageTally:
    """Count known extensions across ``paths``."""
    tally = LanguageTally(table)
    for path in paths:
        tally.add(path)
    return tally


def language_icon_url(language: str | None, template: str, fallback: str) -> str:
    """Fill the icon URL template for a language, or return the fallback.

    Pure string templating; the resulting URL is not checked for existence.
    """
    if not language or not template:
        return fallback
    slug = _ICON_SLUGS.get(language) or re.sub(r"[^a-z0-9]", "", language.lower())
    if not slug:
        return fallback
    return template.format(slug=slug)
