"""Markdown helpers for git-memento note comments.

Keep surface area small: line/range utilities, the structural parse used to
find headings and fenced code, and <details> blocks.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from markdown_it import MarkdownIt

MARKDOWN_FILE_HEADING_RE = re.compile(r"^#{1,6}\s+(\S+\.md\b.*)$", re.IGNORECASE)

# html=True so <INSTRUCTIONS> lines parse as HTML blocks, not paragraphs.
_PARSER = MarkdownIt("commonmark", {"html": True, "linkify": False, "typographer": False})


@dataclass(frozen=True)
class LineRange:
    """Half-open [start, end) span over a note's lines."""
    start: int
    end: int

    def contains(self, index: int) -> bool:
        return self.start <= index < self.end


@dataclass(frozen=True)
class MarkdownFileHeading:
    """Heading that names a *.md file, e.g. `# AGENTS.md instructions for ...`."""
    line: int
    title: str


def normalize_line_endings(value: str | None) -> str:
    """Normalize line endings."""
    return (value or "").replace("\r\n", "\n")


def escape_html(value: str | None) -> str:
    """Escape html."""
    return (value or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def parse_tokens(value: str | None) -> list:
    """Parse markdown into block tokens; malformed input yields no tokens."""
    try:
        return _PARSER.parse(value or "")
    except Exception:
        return []


def _token_range(token) -> LineRange | None:
    mapping = token.map
    if not mapping or len(mapping) != 2:
        return None
    return LineRange(start=mapping[0], end=mapping[1])


def fenced_line_ranges(value: str | None) -> list[LineRange]:
    """Line spans covered by fenced or indented code blocks."""
    ranges: list[LineRange] = []
    for token in parse_tokens(value):
        if token.type not in ("fence", "code_block"):
            continue
        span = _token_range(token)
        if span is not None:
            ranges.append(span)
    return ranges


def is_line_inside_ranges(index: int, ranges: list[LineRange]) -> bool:
    """Is line inside ranges."""
    return any(span.contains(index) for span in ranges)


def markdown_file_headings(value: str | None) -> list[MarkdownFileHeading]:
    """Find headings (levels 1-6) whose text starts with a `*.md` token."""
    tokens = parse_tokens(value)
    headings: list[MarkdownFileHeading] = []
    for idx, token in enumerate(tokens):
        if token.type != "heading_open":
            continue
        span = _token_range(token)
        if span is None:
            continue
        inline = tokens[idx + 1] if idx + 1 < len(tokens) else None
        if inline is None or inline.type != "inline":
            continue

        line = f"# {inline.content or ''}".strip()
        match = MARKDOWN_FILE_HEADING_RE.match(line)
        if not match:
            continue
        headings.append(MarkdownFileHeading(line=span.start, title=match.group(1).strip()))

    return sorted(headings, key=lambda heading: heading.line)


def details_block(
    body_lines: list[str],
    *,
    summary: str = "Details",
    indent: str = "",
) -> list[str]:
    """Details block."""
    if not body_lines:
        return []
    lines = [
        f"{indent}<details>",
        f"{indent}<summary>{summary}</summary>",
        "",
    ]
    for ln in body_lines:
        if ln:
            lines.append(f"{indent}{ln}")
        else:
            lines.append("")
    lines.extend(["", f"{indent}</details>"])
    return lines
