"""Embedded markdown sections: formatting and deduplication.

A section is an instructions block or a named markdown file (AGENTS.md,
PROMPT.md, ...) lifted out of a note. Depending on the capture tool its text
arrives either with its original line breaks or flattened onto one or two
lines; flattened text is re-expanded with a fixed set of rules.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from memento.markdown import normalize_line_endings

NO_CONTENT = "_No content_"

INSTRUCTIONS_MARKER_RE = re.compile(r"^</?INSTRUCTIONS>$", re.IGNORECASE)

_FLATTENED_HINT_RE = re.compile(r"(#{1,6}\s)|(\s-\s)|(\s\d+\)\s)|(</?INSTRUCTIONS>)")

# Applied in order; see format_section_content.
_EXPAND_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s*(</?INSTRUCTIONS>)\s*", re.IGNORECASE), "\n\\1\n"),
    (re.compile(r"\s+(#{1,6}\s+)"), "\n\n\\1"),
    (re.compile(r"\s+(-\s+)"), "\n\\1"),
    (re.compile(r":\s+(\d+\)\s)"), ":\n\\1"),
    (re.compile(r"\s+(\d+\)\s)"), "\n\\1"),
    (re.compile(r"^(#{1,6}\s+[^\n]+?)\s+(A|An|The)\s+", re.MULTILINE), "\\1\n\\2 "),
    (re.compile(r"\n{3,}"), "\n\n"),
)

_BLANK_RUN_RE = re.compile(r"\n{3,}")

SectionFormatter = Callable[[str], str]


@dataclass(frozen=True)
class Section:
    """Data class for Section."""
    title: str
    content: str


def _content_lines(content: str) -> list[str]:
    lines = (line.strip() for line in content.split("\n"))
    return [line for line in lines if line and not INSTRUCTIONS_MARKER_RE.match(line)]


def looks_flattened(content: str) -> bool:
    """True when content collapsed onto 1-2 lines but still carries markdown structure."""
    lines = _content_lines(normalize_line_endings(content))
    if not lines or len(lines) > 2:
        return False
    joined = " ".join(lines)
    return bool(_FLATTENED_HINT_RE.search(joined)) or "SKILL.md" in joined


def format_section_content(value: str | None) -> str:
    """Format section content for display, re-expanding flattened text."""
    content = normalize_line_endings(value).strip()
    if not content:
        return NO_CONTENT

    if not looks_flattened(content):
        return content

    for pattern, replacement in _EXPAND_RULES:
        content = pattern.sub(replacement, content)
    return content.strip()


def plain_section_content(value: str | None) -> str:
    """Verbatim content for providers without a known capture format."""
    return normalize_line_endings(value).strip()


def section_formatter(provider: str | None, formatted_providers: Iterable[str]) -> SectionFormatter:
    """Pick the content formatter for a provider."""
    known = {name.strip().lower() for name in formatted_providers}
    if (provider or "").strip().lower() in known:
        return format_section_content
    return plain_section_content


def normalize_for_key(value: str | None) -> str:
    """Whitespace-insensitive form used to compare sections."""
    lines = normalize_line_endings(value).split("\n")
    joined = "\n".join(line.rstrip() for line in lines)
    return _BLANK_RUN_RE.sub("\n\n", joined).strip()


def section_key(section: Section) -> str:
    """Section key."""
    return f"{normalize_for_key(section.title).lower()}\n---\n{normalize_for_key(section.content)}"


def dedupe_sections(sections: Iterable[Section]) -> tuple[Section, ...]:
    """Keep the first of each (title, content) pair, in discovery order."""
    seen: set[str] = set()
    deduped: list[Section] = []
    for section in sections:
        key = section_key(section)
        if key in seen:
            continue
        seen.add(key)
        deduped.append(section)
    return tuple(deduped)
