"""Lift embedded markdown files and instruction blocks out of a note.

Two passes run in a fixed order, each over the residue of the previous one:

1. file-heading pass: `# AGENTS.md ...` headings and the block that follows,
   usually an <INSTRUCTIONS>...</INSTRUCTIONS> region;
2. top-level pass: bare <INSTRUCTIONS> regions with no file heading.

Lines inside fenced code are never treated as headings or markers.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from memento.markdown import (
    LineRange,
    MARKDOWN_FILE_HEADING_RE,
    fenced_line_ranges,
    is_line_inside_ranges,
    markdown_file_headings,
    normalize_line_endings,
)
from memento.note import NoteMetadata, normalize_markdown_title
from memento.renderer_config import DEFAULT_CONFIG, RendererConfig
from memento.sections import Section, SectionFormatter, dedupe_sections, section_formatter

_OPEN_INSTRUCTIONS_RE = re.compile(r"^<INSTRUCTIONS>$", re.IGNORECASE)
_CLOSE_INSTRUCTIONS_RE = re.compile(r"^</INSTRUCTIONS>$", re.IGNORECASE)
_SPEAKER_HEADING_RE = re.compile(r"^###\s+(.+?)\s*$")
_SESSION_TITLE_LINE_RE = re.compile(r"^- Session Title:\s*(.+)$", re.IGNORECASE)


@dataclass(frozen=True)
class Extraction:
    """Remaining note body plus the sections lifted out of it so far."""
    note_body: str
    sections: tuple[Section, ...] = ()


def speaker_names(metadata: NoteMetadata, reserved: Iterable[str]) -> frozenset[str]:
    """Case-folded names whose `### Name` heading starts a new conversation turn."""
    names = [metadata.provider, metadata.committer, *reserved]
    return frozenset(name.strip().lower() for name in names if name)


def is_speaker_heading(line: str, speakers: frozenset[str]) -> bool:
    """Is speaker heading."""
    match = _SPEAKER_HEADING_RE.match(line.strip())
    if not match:
        return False
    return match.group(1).strip().lower() in speakers


def _section_end(
    lines: list[str],
    start: int,
    *,
    heading_lines: set[int],
    fenced: list[LineRange],
    speakers: frozenset[str],
) -> int:
    """Exclusive end line of the file section whose heading sits at `start`."""
    end = start + 1
    inside_instructions = False
    while end < len(lines):
        candidate = lines[end].strip()
        if is_line_inside_ranges(end, fenced):
            end += 1
            continue

        if _OPEN_INSTRUCTIONS_RE.match(candidate):
            inside_instructions = True
            end += 1
            continue

        if inside_instructions and _CLOSE_INSTRUCTIONS_RE.match(candidate):
            # Closing the region always ends the section.
            return end + 1

        if not inside_instructions and candidate and end > start + 1:
            if end in heading_lines or is_speaker_heading(candidate, speakers):
                return end

        end += 1
    return end


def extract_markdown_file_sections(
    note: str,
    metadata: NoteMetadata,
    *,
    formatter: SectionFormatter,
    reserved_speakers: Iterable[str] = DEFAULT_CONFIG.reserved_speakers,
) -> Extraction:
    """Lift every `*.md` heading section out of the note."""
    lines = normalize_line_endings(note).split("\n")
    headings = markdown_file_headings(note)
    heading_lines = {heading.line for heading in headings}
    fenced = fenced_line_ranges(note)
    speakers = speaker_names(metadata, reserved_speakers)
    keep = [True] * len(lines)
    sections: list[Section] = []

    for heading in headings:
        start = heading.line
        end = _section_end(
            lines,
            start,
            heading_lines=heading_lines,
            fenced=fenced,
            speakers=speakers,
        )
        content = "\n".join(lines[start + 1:end]).strip()
        sections.append(Section(title=heading.title, content=formatter(content)))
        for idx in range(start, end):
            keep[idx] = False

    remaining = "\n".join(line for line, kept in zip(lines, keep) if kept)
    return Extraction(note_body=remaining.strip(), sections=tuple(sections))


def resolve_section_title(lines: list[str], start: int, fallback_title: str) -> str:
    """Title for an instructions block from the nearest non-blank line above it."""
    for idx in range(start - 1, -1, -1):
        line = lines[idx].strip()
        if not line:
            continue

        heading = MARKDOWN_FILE_HEADING_RE.match(line)
        if heading:
            return heading.group(1).strip()

        session_title = _SESSION_TITLE_LINE_RE.match(line)
        if session_title:
            title = normalize_markdown_title(session_title.group(1))
            if title:
                return title
        break

    return fallback_title


def extract_top_level_instruction_sections(
    note_body: str,
    *,
    fallback_title: str,
    formatter: SectionFormatter,
) -> Extraction:
    """Lift bare <INSTRUCTIONS> regions; unterminated regions stay in place."""
    lines = normalize_line_endings(note_body).split("\n")
    fenced = fenced_line_ranges(note_body)
    remaining: list[str] = []
    sections: list[Section] = []

    idx = 0
    while idx < len(lines):
        line = lines[idx]
        if is_line_inside_ranges(idx, fenced) or not _OPEN_INSTRUCTIONS_RE.match(line.strip()):
            remaining.append(line)
            idx += 1
            continue

        end = idx + 1
        while end < len(lines):
            if not is_line_inside_ranges(end, fenced) and _CLOSE_INSTRUCTIONS_RE.match(
                lines[end].strip()
            ):
                break
            end += 1

        if end >= len(lines):
            remaining.append(line)
            idx += 1
            continue

        content = "\n".join(lines[idx:end + 1])
        sections.append(
            Section(
                title=resolve_section_title(lines, idx, fallback_title),
                content=formatter(content),
            )
        )
        idx = end + 1

    return Extraction(note_body="\n".join(remaining).strip(), sections=tuple(sections))


def extract_sections(
    note: str,
    metadata: NoteMetadata,
    config: RendererConfig = DEFAULT_CONFIG,
) -> Extraction:
    """Run the file-heading pass, the top-level pass, then dedupe."""
    formatter = section_formatter(metadata.provider, config.formatted_providers)

    by_heading = extract_markdown_file_sections(
        note,
        metadata,
        formatter=formatter,
        reserved_speakers=config.reserved_speakers,
    )
    top_level = extract_top_level_instruction_sections(
        by_heading.note_body,
        fallback_title=metadata.session_title or config.fallback_title,
        formatter=formatter,
    )
    return Extraction(
        note_body=top_level.note_body,
        sections=dedupe_sections([*by_heading.sections, *top_level.sections]),
    )
