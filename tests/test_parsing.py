"""Tests for notegraph parsing modules.

Coverage:
- src/notegraph/parser/markdown.py - canonical paths and document loading
- src/notegraph/parser/references.py - reference scanning and extraction

Philosophy: Test behaviors, not scanner internals. Use parametrize for variations.
"""

from __future__ import annotations

import time
from datetime import datetime

import pytest

from conftest import note
from notegraph.parser import (
    MalformedMetadata,
    ParseError,
    PlainText,
    Token,
    canonical_path,
    extract_references,
    load_document,
    scan,
)

# ─────────────────────────────────────────────────────────────────────────────
# Canonical Paths
# ─────────────────────────────────────────────────────────────────────────────


class TestCanonicalPath:
    """Tests for canonical_path."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("notes/a.md", "notes/a"),
            ("./notes/a.md", "notes/a"),
            ("notes\\a.md", "notes/a"),
            ("/notes//a.markdown", "notes/a"),
            ("notes/./a.md", "notes/a"),
            ("Notes/My Note.MD", "Notes/My Note"),
            ("plain", "plain"),
        ],
    )
    def test_normalizes(self, raw, expected):
        """Separators, dot segments and markdown extensions are normalized."""
        assert canonical_path(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", ".", "/"])
    def test_empty_paths(self, raw):
        """Paths that name nothing normalize to an empty string."""
        assert canonical_path(raw) == ""


# ─────────────────────────────────────────────────────────────────────────────
# Document Loader
# ─────────────────────────────────────────────────────────────────────────────


class TestLoadDocument:
    """Tests for load_document."""

    def test_recognized_header_fields(self):
        """Recognized keys populate the document."""
        text = note(
            "Body text.",
            title="Alpha",
            tags=["python", "notes"],
            aliases=["first"],
            created="2024-01-15",
            draft=True,
        )

        document = load_document("notes/alpha.md", text)

        assert document.path == "notes/alpha"
        assert document.source_path == "notes/alpha.md"
        assert document.title == "Alpha"
        assert document.tags == ("python", "notes")
        assert document.aliases == ("first",)
        assert document.created == datetime(2024, 1, 15)
        assert document.draft is True
        assert document.body.strip() == "Body text."

    def test_yaml_dates_become_datetimes(self):
        """Unquoted YAML dates are promoted to midnight datetimes."""
        text = "---\ncreated: 2024-01-15\nupdated: 2024-02-01T10:30:00\n---\n\nBody\n"

        document = load_document("a.md", text)

        assert document.created == datetime(2024, 1, 15)
        assert document.updated == datetime(2024, 2, 1, 10, 30)

    def test_no_header(self):
        """A document without a header loads with defaults."""
        document = load_document("notes/beta.md", "Just text with [[a]].")

        assert document.title == "beta"
        assert document.tags == ()
        assert document.aliases == ()
        assert document.draft is False
        assert document.body == "Just text with [[a]]."

    def test_empty_header(self):
        """An empty header is valid."""
        document = load_document("a.md", "---\n---\nBody\n")

        assert document.title == "a"
        assert document.body == "Body\n"

    def test_unrecognized_keys_kept_opaquely(self):
        """Keys the loader does not interpret are preserved in extra."""
        text = note("Body", title="A", cssclass="wide", rating=5)

        document = load_document("a.md", text)

        assert document.extra == {"cssclass": "wide", "rating": 5}

    def test_alternate_spellings(self):
        """tag/alias/date/lastmod are read as tags/aliases/created/updated."""
        text = note(
            "Body",
            tag=["x"],
            alias=["ex"],
            date="2024-01-01",
            lastmod="2024-03-01",
        )

        document = load_document("a.md", text)

        assert document.tags == ("x",)
        assert document.aliases == ("ex",)
        assert document.created == datetime(2024, 1, 1)
        assert document.updated == datetime(2024, 3, 1)
        assert document.extra == {}

    def test_second_spelling_of_a_field_is_opaque(self):
        """When both tags and tag appear, the first wins and the other is kept."""
        text = note("Body", tags=["x"], tag=["y"])

        document = load_document("a.md", text)

        assert document.tags == ("x",)
        assert document.extra == {"tag": ["y"]}

    def test_comma_separated_strings(self):
        """A single string is split on commas for tags and aliases."""
        text = note("Body", tags="python, testing", aliases="one,two")

        document = load_document("a.md", text)

        assert document.tags == ("python", "testing")
        assert document.aliases == ("one", "two")

    def test_tags_normalized_and_deduplicated(self):
        """Tags lose a leading # and inner whitespace; duplicates collapse."""
        text = note("Body", tags=["#Project Alpha", "Project-Alpha", "misc"])

        document = load_document("a.md", text)

        assert document.tags == ("Project-Alpha", "misc")

    def test_aliases_deduplicated_case_insensitively(self):
        """The first spelling of a repeated alias is kept."""
        text = note("Body", aliases=["Bee", "bee", " BEE "])

        document = load_document("a.md", text)

        assert document.aliases == ("Bee",)

    def test_draft_accepts_string_booleans(self):
        """draft: "true" is read as a boolean."""
        document = load_document("a.md", note("Body", draft="true"))

        assert document.draft is True

    def test_blank_title_falls_back_to_file_name(self):
        """A blank title is replaced by the last path segment."""
        document = load_document("deep/dir/name.md", note("Body", title="  "))

        assert document.title == "name"

    def test_numeric_title(self):
        """A title YAML reads as a number is kept as text."""
        document = load_document("books/orwell.md", note("Body", title=1984))

        assert document.title == "1984"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ([2024, "x"], ("2024", "x")),
            (2024, ("2024",)),
            ([1.5], ("1.5",)),
        ],
    )
    def test_numeric_tags(self, value, expected):
        """Year and version tags survive as strings."""
        document = load_document("a.md", note("Body", tags=value))

        assert document.tags == expected

    def test_numeric_aliases(self):
        document = load_document("a.md", note("Body", aliases=[404, "not found"]))

        assert document.aliases == ("404", "not found")


class TestMalformedMetadata:
    """Failure modes of the metadata header."""

    def test_unterminated_header(self):
        """A header that never closes is malformed."""
        with pytest.raises(MalformedMetadata, match="Unterminated"):
            load_document("bad.md", "---\ntitle: Never closed\n\nBody text\n")

    def test_invalid_yaml(self):
        """YAML that fails to parse is malformed."""
        with pytest.raises(MalformedMetadata, match="Failed to parse"):
            load_document("bad.md", "---\ntitle: [unclosed\n---\nBody\n")

    def test_header_must_be_mapping(self):
        """A YAML list header is malformed."""
        with pytest.raises(MalformedMetadata, match="mapping"):
            load_document("bad.md", "---\n- a\n- b\n---\nBody\n")

    @pytest.mark.parametrize(
        "header",
        [
            "tags:\n  a: 1",
            "aliases:\n  key: value",
            "draft: maybe",
            "created: not-a-date",
            "title:\n  - a\n  - b",
            "tags:\n  - [a, b]",
            "title: true",
        ],
    )
    def test_wrong_value_type(self, header):
        """A recognized key with the wrong type is malformed."""
        with pytest.raises(MalformedMetadata) as exc_info:
            load_document("bad.md", f"---\n{header}\n---\nBody\n")

        assert exc_info.value.path == "bad.md"
        assert "Invalid metadata header" in str(exc_info.value)

    def test_malformed_is_a_parse_error(self):
        """Callers can catch every loader failure as ParseError."""
        assert issubclass(MalformedMetadata, ParseError)

    def test_path_naming_nothing(self):
        """A path without a name is a ParseError, not malformed metadata."""
        with pytest.raises(ParseError) as exc_info:
            load_document(".md", "Body")

        assert not isinstance(exc_info.value, MalformedMetadata)


# ─────────────────────────────────────────────────────────────────────────────
# Reference Scanner
# ─────────────────────────────────────────────────────────────────────────────


def _rebuild(segments) -> str:
    return "".join(s.text if isinstance(s, PlainText) else s.raw for s in segments)


def _links(body: str) -> list[Token]:
    return [t for t in extract_references(body) if t.kind == "link"]


class TestScan:
    """Tests for scan."""

    def test_plain_text_only(self):
        """A body without references is one plain segment."""
        assert scan("Nothing to see here.") == [PlainText("Nothing to see here.", 0)]

    def test_empty_body(self):
        """An empty body yields no segments."""
        assert scan("") == []

    def test_token_and_text(self):
        """A link splits the surrounding text."""
        segments = scan("see [[b]] now")

        assert isinstance(segments[0], PlainText)
        assert segments[0].text == "see "
        token = segments[1]
        assert isinstance(token, Token)
        assert (token.kind, token.target, token.start, token.end) == ("link", "b", 4, 9)
        assert segments[2] == PlainText(" now", 9)

    @pytest.mark.parametrize(
        "body",
        [
            "see [[b]] and [[c|Cee]] #tag",
            "[[a [[b]] c]] ![[img]] `[[code]]`",
            "broken [[ and ]] and [x](y.md) #1",
            "```\n[[fenced]]\n```\ntext [[after]]",
        ],
    )
    def test_segments_cover_body(self, body):
        """Concatenating segments gives back the body exactly."""
        assert _rebuild(scan(body)) == body

    def test_positions(self):
        """Tokens carry 1-based line and column."""
        body = "first line\nsecond\n  and [[target]] here"

        (token,) = extract_references(body)

        assert token.line == 3
        assert token.column == 7
        assert body[token.start : token.end] == "[[target]]"


class TestWikilinks:
    """Wikilink syntax variations."""

    @pytest.mark.parametrize(
        "body, target, anchor, display, embed",
        [
            ("[[b]]", "b", None, None, False),
            ("[[b|Bee]]", "b", None, "Bee", False),
            ("[[b#Heading]]", "b", "Heading", None, False),
            ("[[b#Heading|Bee]]", "b", "Heading", "Bee", False),
            ("[[b\\|Bee]]", "b", None, "Bee", False),
            ("![[b]]", "b", None, None, True),
            ("[[notes/b.md]]", "notes/b.md", None, None, False),
            ("[[  spaced  ]]", "spaced", None, None, False),
        ],
    )
    def test_forms(self, body, target, anchor, display, embed):
        """Each wikilink form yields one link token."""
        (token,) = _links(body)

        assert token.target == target
        assert token.anchor == anchor
        assert token.display == display
        assert token.embed is embed
        assert token.syntax == "wikilink"
        assert token.raw == body

    @pytest.mark.parametrize(
        "body",
        ["[[b", "[[b]", "[[]]", "[[ ]]", "[[#heading]]", "[[a\nb]]", "]] [[", "[[[x"],
    )
    def test_malformed_is_plain_text(self, body):
        """Incomplete, empty, multi-line and anchor-only links are not references."""
        assert _links(body) == []
        assert _rebuild(scan(body)) == body

    def test_nested_brackets_keep_inner_link(self):
        """Only the innermost well-formed link survives nesting."""
        assert [t.target for t in _links("[[a [[b]] c]]")] == ["b"]

    def test_duplicates_and_order_preserved(self):
        """Every occurrence is returned in body order."""
        assert [t.target for t in _links("[[c]] [[b]] [[c]]")] == ["c", "b", "c"]


class TestMarkdownLinks:
    """Standard markdown links to other documents."""

    def test_relative_document_link(self):
        """A relative .md href is a path reference."""
        (token,) = _links("[Bee](notes/b.md#part)")

        assert token.syntax == "markdown"
        assert token.target == "notes/b.md"
        assert token.anchor == "part"
        assert token.display == "Bee"

    def test_extensionless_and_encoded_href(self):
        """Percent-encoding is decoded."""
        (token,) = _links("[x](my%20note)")

        assert token.target == "my note"

    @pytest.mark.parametrize(
        "body",
        [
            "[site](https://example.com/page.md)",
            "[mail](mailto:someone@example.com)",
            "[top](#top)",
            "[pdf](files/report.pdf)",
            "![image](pic.png)",
            "![image](diagram.md)",
            "[spaced](a b.md)",
            "[unclosed](b.md",
        ],
    )
    def test_not_document_links(self, body):
        """External URLs, anchors, assets and images are plain text."""
        assert _links(body) == []


class TestHashtags:
    """Inline tag references."""

    @pytest.mark.parametrize(
        "body, expected",
        [
            ("#tag", ["tag"]),
            ("text #a/b end", ["a/b"]),
            ("(#x)", ["x"]),
            ("#tag/ trailing", ["tag"]),
            ("#under_score and #dash-ed", ["under_score", "dash-ed"]),
            ("#123", []),
            ("#2024/01", []),
            ("# Heading", []),
            ("## Heading", []),
            ("foo#bar", []),
            ("[[page#section]]", []),
        ],
    )
    def test_tags(self, body, expected):
        """Hashtags need a boundary before them and a non-numeric name."""
        tags = [t.target for t in extract_references(body) if t.kind == "tag"]

        assert tags == expected

    def test_tag_token_shape(self):
        """Tag tokens carry the hashtag as written."""
        (token,) = extract_references("see #python")

        assert token.kind == "tag"
        assert token.syntax == "hashtag"
        assert token.raw == "#python"


class TestCodeIsInert:
    """References inside code are ignored."""

    def test_inline_code(self):
        """Inline code spans hide links and tags."""
        assert extract_references("`[[b]] #tag` and ``[[c]]``") == []

    def test_unclosed_backtick_is_plain(self):
        """A lone backtick does not swallow the rest of the line."""
        assert [t.target for t in _links("`[[b]]")] == ["b"]

    @pytest.mark.parametrize("fence", ["```", "~~~"])
    def test_fenced_block(self, fence):
        """Fenced blocks hide references until the fence closes."""
        body = f"{fence}python\n[[inside]] #inside\n{fence}\n[[outside]]"

        assert [t.target for t in extract_references(body)] == ["outside"]

    def test_unclosed_fence_runs_to_end(self):
        """An unclosed fence hides everything after it."""
        assert extract_references("[[before]]\n```\n[[after]]") == extract_references("[[before]]")


class TestScanCost:
    """Scan time grows with the body, not with its square."""

    @pytest.mark.parametrize("unit", ["[a](", "[[a", "[a] (", "![x](", "[a](b c"])
    def test_unterminated_links(self, unit):
        """Repeated link openers that never close are each rejected in constant time."""
        body = unit * 20000

        started = time.perf_counter()
        tokens = extract_references(body)
        elapsed = time.perf_counter() - started

        assert [t for t in tokens if t.kind == "link"] == []
        assert elapsed < 2.0
