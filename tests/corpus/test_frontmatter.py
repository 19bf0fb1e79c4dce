# tests/corpus/test_frontmatter.py
"""Tests for markdown and frontmatter parsing helpers."""

import pytest

from concierge.corpus.frontmatter import (
    FrontmatterError,
    as_string_list,
    extract_links,
    extract_quoted_phrases,
    first_heading,
    first_paragraph,
    parse_document,
    split_examples,
)


class TestParseDocument:
    """Tests for parse_document()."""

    def test_frontmatter_and_body(self):
        doc = parse_document("---\nname: x\ndescription: y\n---\n# Title\n")

        assert doc.has_frontmatter
        assert doc.metadata == {"name": "x", "description": "y"}
        assert doc.body == "# Title\n"

    def test_no_frontmatter(self):
        """Plain markdown keeps its whole text as body."""
        doc = parse_document("# Just a heading\n")

        assert not doc.has_frontmatter
        assert doc.metadata == {}
        assert doc.body == "# Just a heading\n"

    def test_crlf_and_bom(self):
        doc = parse_document("\ufeff---\r\ndescription: z\r\n---\r\nBody")

        assert doc.metadata == {"description": "z"}
        assert doc.body == "Body"

    def test_empty_frontmatter(self):
        doc = parse_document("---\n\n---\nBody\n")

        assert doc.has_frontmatter
        assert doc.metadata == {}

    def test_invalid_yaml_raises(self):
        with pytest.raises(FrontmatterError, match="invalid YAML"):
            parse_document("---\nkey: [oops\n---\n")

    def test_non_mapping_raises(self):
        with pytest.raises(FrontmatterError, match="must be a mapping"):
            parse_document("---\n- a\n- b\n---\n")


class TestQuotedPhrases:
    """Tests for extract_quoted_phrases()."""

    def test_double_quotes_in_order(self):
        text = 'Use when asked to "test a controller" or "mock a service".'

        assert extract_quoted_phrases(text) == ["test a controller", "mock a service"]

    def test_curly_and_single_quotes(self):
        text = "Say “lift state up” or 'use a reducer' but don't guess."

        assert extract_quoted_phrases(text) == ["lift state up", "use a reducer"]

    def test_case_insensitive_dedup(self):
        text = '"Unit Test" then "unit test" again'

        assert extract_quoted_phrases(text) == ["Unit Test"]

    def test_whitespace_collapsed(self):
        assert extract_quoted_phrases('"split   across\tspaces"') == ["split across spaces"]


class TestSplitExamples:
    """Tests for split_examples()."""

    def test_examples_removed_from_text(self):
        text = "Reviewer persona. <example>Review my PR</example> Strict. <EXAMPLE>Check tests</EXAMPLE>"

        stripped, examples = split_examples(text)

        assert stripped == "Reviewer persona. Strict."
        assert examples == ["Review my PR", "Check tests"]

    def test_no_examples(self):
        assert split_examples("Plain description") == ("Plain description", [])


class TestExtractLinks:
    """Tests for extract_links()."""

    def test_relative_markdown_links(self):
        body = "See [a](refs/a.md), [b](./b.markdown) and [c](notes/c.txt)."

        assert extract_links(body) == ["refs/a.md", "./b.markdown", "notes/c.txt"]

    def test_skips_urls_anchors_images_and_other_files(self):
        body = (
            "[web](https://x.dev/a.md) [mail](mailto:a@b.md) [abs](/etc/a.md) "
            "[anchor](#top) ![pic](img.md) [code](main.py)"
        )

        assert extract_links(body) == []

    def test_skips_fenced_blocks(self):
        body = "```md\n[inside](inside.md)\n```\n~~~\n[tilde](t.md)\n~~~\n[outside](outside.md)\n"

        assert extract_links(body) == ["outside.md"]

    def test_drops_fragment_and_dedupes(self):
        body = "[one](x.md#part) [two](x.md) [three](<y.md>)"

        assert extract_links(body) == ["x.md", "y.md"]


class TestHeadingAndParagraph:
    """Tests for first_heading() and first_paragraph()."""

    def test_first_heading(self):
        assert first_heading("intro\n\n## Setup ##\n# Later\n") == "Setup"

    def test_heading_inside_fence_skipped(self):
        assert first_heading("```\n# not a heading\n```\n# Real\n") == "Real"

    def test_first_heading_missing(self):
        assert first_heading("no headings here") is None

    def test_first_paragraph_skips_heading(self):
        body = "# Title\n\nFirst line\ncontinues here.\n\nSecond paragraph.\n"

        assert first_paragraph(body) == "First line continues here."


class TestAsStringList:
    """Tests for as_string_list()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, []),
            ("a, b ,c", ["a", "b", "c"]),
            (["x", " y ", ""], ["x", "y"]),
            (3, ["3"]),
        ],
    )
    def test_coercion(self, value, expected):
        assert as_string_list(value) == expected
