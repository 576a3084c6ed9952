"""Tests for memento.sections — flattened-content formatting and deduplication."""

from memento.sections import (
    NO_CONTENT,
    Section,
    dedupe_sections,
    format_section_content,
    looks_flattened,
    normalize_for_key,
    plain_section_content,
    section_formatter,
)


class TestLooksFlattened:
    def test_heading_marker(self):
        assert looks_flattened("## Skills A skill is a set of instructions.")

    def test_dash_list(self):
        assert looks_flattened("Rules: a - b")

    def test_numbered_list(self):
        assert looks_flattened("Steps: 1) build 2) test")

    def test_inline_instruction_marker(self):
        assert looks_flattened("<INSTRUCTIONS> be brief")

    def test_skill_md_mention(self):
        assert looks_flattened("Open SKILL.md first")

    def test_plain_sentence(self):
        assert not looks_flattened("Just a sentence.")

    def test_three_lines_are_not_flattened(self):
        assert not looks_flattened("## a\n- b\n- c")

    def test_marker_lines_do_not_count(self):
        assert looks_flattened("<INSTRUCTIONS>\n## Context\n- one\n</INSTRUCTIONS>")

    def test_only_markers(self):
        assert not looks_flattened("<INSTRUCTIONS>\n</INSTRUCTIONS>")


class TestFormatSectionContent:
    def test_empty_content(self):
        assert format_section_content("") == NO_CONTENT
        assert format_section_content("  \n ") == NO_CONTENT
        assert format_section_content(None) == NO_CONTENT

    def test_multiline_content_is_verbatim(self):
        content = "## Skills\nA skill.\n- item\n\n\n\nlast"
        assert format_section_content(f"\n{content}\n") == content

    def test_plain_one_liner_is_verbatim(self):
        assert format_section_content("  Just a sentence.  ") == "Just a sentence."

    def test_expands_flattened_headings_and_lists(self):
        flattened = (
            "## Skills A skill is a set of local instructions to follow. "
            "### Available skills - git-memento-workflow: Use git-memento. "
            "### How to use skills - Discovery: open SKILL.md."
        )
        assert format_section_content(flattened) == (
            "## Skills\n"
            "A skill is a set of local instructions to follow.\n"
            "\n"
            "### Available skills\n"
            "- git-memento-workflow: Use git-memento.\n"
            "\n"
            "### How to use skills\n"
            "- Discovery: open SKILL.md."
        )

    def test_expands_numbered_list(self):
        assert format_section_content("Steps: 1) build 2) test") == "Steps:\n1) build\n2) test"

    def test_expands_inline_instruction_markers(self):
        assert format_section_content("<INSTRUCTIONS> ## Rules - be nice </INSTRUCTIONS>") == (
            "<INSTRUCTIONS>\n\n## Rules\n- be nice\n</INSTRUCTIONS>"
        )

    def test_expands_between_marker_lines(self):
        content = "<INSTRUCTIONS>\n## Context ### Constraints - Keep it.\n</INSTRUCTIONS>"
        assert format_section_content(content) == (
            "<INSTRUCTIONS>\n\n## Context\n\n### Constraints\n- Keep it.\n</INSTRUCTIONS>"
        )

    def test_splits_heading_from_sentence_starting_with_an(self):
        assert format_section_content("## Setup An example follows.") == (
            "## Setup\nAn example follows."
        )

    def test_splits_heading_from_sentence_starting_with_the(self):
        assert format_section_content("## Usage The tool runs.") == "## Usage\nThe tool runs."

    def test_collapses_blank_runs_in_flattened_content(self):
        assert format_section_content("Intro SKILL.md\n\n\n\nmore") == "Intro SKILL.md\n\nmore"

    def test_normalizes_crlf(self):
        assert format_section_content("a\r\nb\r\nc") == "a\nb\nc"


class TestSectionFormatter:
    def test_known_providers_case_insensitive(self):
        assert section_formatter("Codex", ("codex", "claude")) is format_section_content
        assert section_formatter(" CLAUDE ", ("codex", "claude")) is format_section_content

    def test_unknown_provider_is_plain(self):
        assert section_formatter("Gemini", ("codex", "claude")) is plain_section_content
        assert section_formatter(None, ("codex",)) is plain_section_content

    def test_plain_content(self):
        assert plain_section_content("  a\r\nb  ") == "a\nb"
        assert plain_section_content("") == ""


class TestDedupeSections:
    def test_identical_after_normalization_collapse(self):
        sections = [
            Section(title="AGENTS.md", content="rule one  \n\n\n\nrule two\n"),
            Section(title=" agents.md", content="rule one\n\nrule two"),
        ]
        assert dedupe_sections(sections) == (sections[0],)

    def test_same_title_different_content_kept(self):
        sections = [
            Section(title="AGENTS.md", content="rule one"),
            Section(title="AGENTS.md", content="rule two"),
        ]
        assert dedupe_sections(sections) == tuple(sections)

    def test_preserves_discovery_order(self):
        a = Section(title="A.md", content="x")
        b = Section(title="B.md", content="y")
        assert dedupe_sections([b, a, b]) == (b, a)

    def test_empty(self):
        assert dedupe_sections([]) == ()

    def test_normalize_for_key(self):
        assert normalize_for_key("a \r\n\n\n\nb  \n") == "a\n\nb"
