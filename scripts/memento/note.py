"""Header metadata parsing for git-memento session notes.

A note starts with `- Key: value` lines (Provider, Session ID, Committer,
Session Title, Captured At (UTC)). Missing keys fall back to defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_PROVIDER_RE = re.compile(r"^- Provider:\s*(.+)$", re.MULTILINE)
_SESSION_ID_RE = re.compile(r"^- Session ID:\s*(.+)$", re.MULTILINE)
_COMMITTER_RE = re.compile(r"^- Committer:\s*(.+)$", re.MULTILINE)
_SESSION_TITLE_RE = re.compile(r"^- Session Title:\s*(.+)$", re.MULTILINE)
_TITLE_PREFIX_RE = re.compile(r"^#+\s*")

DEFAULT_PROVIDER = "unknown"


@dataclass(frozen=True)
class NoteMetadata:
    """Data class for Note Metadata."""
    provider: str = DEFAULT_PROVIDER
    session_id: str = ""
    committer: str = ""
    session_title: str = ""

    @property
    def agent_id(self) -> str:
        """`provider / session-id`, or just the provider when no session id."""
        if self.session_id:
            return f"{self.provider} / {self.session_id}"
        return self.provider


def _first_value(pattern: re.Pattern[str], note: str) -> str | None:
    match = pattern.search(note)
    if not match:
        return None
    return match.group(1).strip()


def normalize_markdown_title(value: str | None) -> str:
    """Drop leading heading markers: `# AGENTS.md` -> `AGENTS.md`."""
    return _TITLE_PREFIX_RE.sub("", value or "", count=1).strip()


def session_title(note: str | None) -> str:
    """Session Title header value, without heading markers ("" if absent)."""
    raw = _first_value(_SESSION_TITLE_RE, note or "")
    return normalize_markdown_title(raw) if raw is not None else ""


def parse_note(note: str | None) -> NoteMetadata:
    """Parse note."""
    text = note or ""
    provider = _first_value(_PROVIDER_RE, text)
    return NoteMetadata(
        provider=provider if provider is not None else DEFAULT_PROVIDER,
        session_id=_first_value(_SESSION_ID_RE, text) or "",
        committer=_first_value(_COMMITTER_RE, text) or "",
        session_title=session_title(text),
    )
