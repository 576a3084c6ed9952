#!/usr/bin/env python3
"""Render a git-memento session note as a commit comment body."""

from memento.render_note_comment import main

if __name__ == "__main__":
    raise SystemExit(main())
