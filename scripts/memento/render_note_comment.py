"""Render a git-memento session note as a GitHub commit comment body.

The note body goes in one collapsible block; embedded markdown files and
instruction blocks are lifted into their own blocks under "Markdown files".
Bodies over the size budget first lose the nested sections, then get the
note itself truncated.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from memento.extract import extract_sections
from memento.markdown import details_block, escape_html, normalize_line_endings
from memento.note import parse_note
from memento.renderer_config import DEFAULT_CONFIG, ConfigError, RendererConfig, load_renderer_config
from memento.sections import Section

# Used by the posting tool to find and update an existing comment.
MARKER = "<!-- git-memento-note-comment -->"

NO_SESSION_NOTICE = "No AI session was attached to this commit."
NOTE_SUMMARY = "The note attached to the commit"
SECTIONS_HEADING = "### Markdown files"
SECTIONS_OMITTED_NOTICE = "_Nested markdown sections omitted due to GitHub comment size limits._"
TRUNCATED_NOTICE = "_Note truncated due to GitHub comment size limits._"

# Resolves inside a source checkout only; see _resolve_config.
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "defaults" / "note-comment.yml"


def fail(message: str, code: int = 2) -> int:
    """Fail."""
    print(f"render-note-comment: {message}", file=sys.stderr)
    return code


def render_section(section: Section) -> str:
    """One collapsible block; ~~~ fences survive ``` fences inside the content."""
    body = ["~~~markdown", *section.content.split("\n"), "~~~"]
    return "\n".join(details_block(body, summary=escape_html(section.title)))


def render_markdown_sections(sections: tuple[Section, ...] | list[Section]) -> str:
    """Render markdown sections."""
    if not sections:
        return ""
    rendered = "\n\n".join(render_section(section) for section in sections)
    return f"\n\n{SECTIONS_HEADING}\n\n{rendered}"


def render_note_block(note_body: str) -> str:
    """Render note block."""
    return "\n".join(details_block(note_body.split("\n"), summary=NOTE_SUMMARY))


def build_heading(agent_id: str) -> str:
    """Build heading."""
    return f"{MARKER}\nThis commit has a prompt attached to it created with agent {agent_id}:"


def build_no_session_body() -> str:
    """Body for commits that carry no session note."""
    return f"{MARKER}\n{NO_SESSION_NOTICE}"


def _truncated_body(heading: str, note_body: str, max_body_length: int) -> str:
    head = f"{heading}\n\n<details>\n<summary>{NOTE_SUMMARY}</summary>\n\n"
    reserve = f"\n\n{TRUNCATED_NOTICE}\n\n</details>"
    available = max(0, max_body_length - len(head) - len(reserve))
    return f"{head}{note_body[:available]}{reserve}"


@dataclass(frozen=True)
class RenderedBody:
    """Comment body plus whether the size budget forced a shorter rendering."""
    body: str
    degraded: bool = False


def minimum_body_length(note: str | None) -> int:
    """Smallest budget that still fits the heading, truncation notice and closing tag."""
    heading = build_heading(parse_note(note).agent_id)
    return len(_truncated_body(heading, "", 0))


def render_body(
    note: str | None,
    max_body_length: int | None = None,
    *,
    config: RendererConfig = DEFAULT_CONFIG,
) -> RenderedBody:
    """Render the comment body for a note, within `max_body_length` characters.

    Degrades in two steps when the full body is too long: drop every nested
    section (never a partial set), then truncate the note body itself.
    """
    limit = config.max_body_length if max_body_length is None else max_body_length
    metadata = parse_note(note)
    normalized_note = normalize_line_endings(note).strip()
    extraction = extract_sections(normalized_note, metadata, config)

    # Extraction never leaves an empty note block behind.
    note_body = extraction.note_body or normalized_note
    heading = build_heading(metadata.agent_id)
    main_block = f"{heading}\n\n{render_note_block(note_body)}"

    body = f"{main_block}{render_markdown_sections(extraction.sections)}"
    if len(body) <= limit:
        return RenderedBody(body=body)
    body = f"{main_block}\n\n{SECTIONS_OMITTED_NOTICE}"
    if len(body) <= limit:
        return RenderedBody(body=body, degraded=True)
    return RenderedBody(body=_truncated_body(heading, note_body, limit), degraded=True)


def build_body(
    note: str | None,
    max_body_length: int | None = None,
    *,
    config: RendererConfig = DEFAULT_CONFIG,
) -> str:
    """Build the comment body for a note, within `max_body_length` characters."""
    return render_body(note, max_body_length, config=config).body


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Render a git-memento note as a commit comment body.")
    p.add_argument("--note-file", default="", help="Path to the note text (default: stdin)")
    p.add_argument("--output", default="", help="Path to write the comment body (default: stdout)")
    p.add_argument(
        "--max-body-length",
        type=int,
        default=None,
        help="Maximum comment body length in characters (default: config max_body_length)",
    )
    p.add_argument(
        "--config",
        default="",
        help=(
            "Renderer config YAML (default: defaults/note-comment.yml, only found in a "
            "source checkout; installed copies fall back to built-in defaults)"
        ),
    )
    p.add_argument(
        "--no-session",
        action="store_true",
        help="Render the fallback body for a commit without a note",
    )
    return p.parse_args(argv)


def _read_note(note_file: str) -> str:
    if note_file:
        return Path(note_file).read_text(encoding="utf-8")
    return sys.stdin.read()


def _resolve_config(path: str) -> RendererConfig:
    if path:
        return load_renderer_config(Path(path))
    if DEFAULT_CONFIG_PATH.is_file():
        return load_renderer_config(DEFAULT_CONFIG_PATH)
    return DEFAULT_CONFIG


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if args.max_body_length is not None and args.max_body_length < 1:
        return fail("--max-body-length must be >= 1")

    try:
        config = _resolve_config(args.config)
    except ConfigError as exc:
        return fail(f"config error: {exc}")

    if args.no_session:
        body = build_no_session_body()
    else:
        try:
            note = _read_note(args.note_file)
        except (OSError, UnicodeDecodeError) as exc:
            return fail(f"failed to read note {args.note_file or '<stdin>'}: {exc}", code=1)

        if not note.strip():
            body = build_no_session_body()
        else:
            limit = args.max_body_length or config.max_body_length
            minimum = minimum_body_length(note)
            if limit < minimum:
                return fail(
                    f"body limit {limit} is below the {minimum} characters "
                    "needed for the heading and truncation notice"
                )
            rendered = render_body(note, limit, config=config)
            body = rendered.body
            if rendered.degraded:
                print(
                    f"::warning::Note comment exceeded {limit} characters and was shortened.",
                    file=sys.stderr,
                )

    if not args.output:
        sys.stdout.write(body)
        return 0
    try:
        Path(args.output).write_text(body, encoding="utf-8")
    except OSError as exc:
        return fail(f"failed to write {args.output}: {exc}", code=1)
    return 0
