"""Reference extraction from document bodies.

A single left-to-right scan splits a body into tokens and plain text.
Anything that does not form a complete reference is plain text; the scan
never fails, whatever the body contains.

Recognised forms:
    [[target]]  [[target|display]]  [[target#heading]]  ![[target]]
    [text](relative/path.md)
    #tag  #parent/child

Fenced code blocks and inline code spans yield no references.
"""

from __future__ import annotations

import posixpath
from bisect import bisect_right
from dataclasses import dataclass
from typing import Literal, Union
from urllib.parse import unquote

from ..config import MARKDOWN_EXTENSIONS

_FENCES = ("```", "~~~")


@dataclass(frozen=True)
class Token:
    """A reference found in a body."""

    kind: Literal["link", "tag"]
    raw: str  # Exactly as written
    target: str  # Link target without anchor, or tag text without "#"
    start: int
    end: int
    line: int
    column: int
    anchor: str | None = None
    display: str | None = None  # Author-supplied display text
    embed: bool = False
    syntax: Literal["wikilink", "markdown", "hashtag"] = "wikilink"


@dataclass(frozen=True)
class PlainText:
    """A run of body text that holds no reference."""

    text: str
    start: int


Segment = Union[Token, PlainText]


def _next_stop_table(body: str, stops: str) -> list[int]:
    """table[i] is the first offset >= i holding one of stops, or len(body)."""
    table = [len(body)] * (len(body) + 1)
    for i in range(len(body) - 1, -1, -1):
        table[i] = i if body[i] in stops else table[i + 1]
    return table


def _is_tag_char(ch: str) -> bool:
    return ch.isalnum() or ch in "-_/"


def _split_display(inner: str) -> tuple[str, str | None]:
    # "\|" is how a pipe is written inside a table cell
    bar = inner.find("|")
    if bar == -1:
        return inner, None
    target = inner[:bar]
    if target.endswith("\\"):
        target = target[:-1]
    return target, inner[bar + 1 :]


def _internal_href(href: str) -> tuple[str, str | None] | None:
    """Return (path, anchor) for an href naming another document, else None."""
    if not href or href.startswith(("#", "//", "<")):
        return None
    if ":" in href.split("/", 1)[0]:
        return None  # http:, mailto:, ...

    path, _, anchor = href.partition("#")
    path = unquote(path.split("?", 1)[0])
    extension = posixpath.splitext(path)[1].lower()
    if not path or (extension and extension not in MARKDOWN_EXTENSIONS):
        return None
    return path, anchor or None


class _Scanner:
    def __init__(self, body: str) -> None:
        self.body = body
        self.size = len(body)
        self.segments: list[Segment] = []
        self.plain_start = 0
        self.line_starts = [0] + [i + 1 for i, ch in enumerate(body) if ch == "\n"]
        # Next-stop tables; bracket and href scans are lookups, never rescans
        self.bracket_stops = _next_stop_table(body, "[]\n")
        self.href_stops = _next_stop_table(body, ")\n \t")

    def _position(self, offset: int) -> tuple[int, int]:
        line = bisect_right(self.line_starts, offset)
        return line, offset - self.line_starts[line - 1] + 1

    def _emit(self, token: Token) -> None:
        if token.start > self.plain_start:
            self.segments.append(PlainText(self.body[self.plain_start : token.start], self.plain_start))
        self.segments.append(token)
        self.plain_start = token.end

    def _token(self, start: int, end: int, **fields) -> Token:
        line, column = self._position(start)
        return Token(raw=self.body[start:end], start=start, end=end, line=line, column=column, **fields)

    def _bracket_end(self, pos: int) -> int:
        """Index of the first "[", "]" or newline at or after pos."""
        return self.bracket_stops[pos]

    def _wikilink(self, start: int, open_at: int, embed: bool) -> int:
        """Try a wikilink whose "[[" is at open_at. Returns the resume offset, 0 on failure."""
        close = self._bracket_end(open_at + 2)
        if not self.body.startswith("]]", close):
            return 0

        target_part, display = _split_display(self.body[open_at + 2 : close])
        target, _, anchor = target_part.partition("#")
        target = target.strip()
        end = close + 2
        if not target:
            # [[#heading]] points inside the same page
            return end

        self._emit(
            self._token(
                start,
                end,
                kind="link",
                target=target,
                anchor=anchor.strip() or None,
                display=(display or "").strip() or None,
                embed=embed,
                syntax="wikilink",
            )
        )
        return end

    def _markdown_link(self, start: int, open_at: int, image: bool) -> int:
        """Try [text](href) with "[" at open_at. Returns the resume offset, 0 on failure."""
        body = self.body
        close = self._bracket_end(open_at + 1)
        if close >= self.size or body[close] != "]" or not body.startswith("(", close + 1):
            return 0

        href_end = self.href_stops[close + 2]
        if href_end >= self.size or body[href_end] != ")":
            return 0

        end = href_end + 1
        internal = None if image else _internal_href(body[close + 2 : href_end])
        if internal is not None:
            path, anchor = internal
            self._emit(
                self._token(
                    start,
                    end,
                    kind="link",
                    target=path,
                    anchor=anchor,
                    display=body[open_at + 1 : close].strip() or None,
                    syntax="markdown",
                )
            )
        return end

    def _hashtag(self, start: int) -> int:
        body = self.body
        if start > 0 and not (body[start - 1].isspace() or body[start - 1] == "("):
            return 0

        end = start + 1
        while end < self.size and _is_tag_char(body[end]):
            end += 1
        text = body[start + 1 : end].rstrip("/")
        # "#123" is an issue number, not a tag
        if not text or all(ch.isdigit() or ch == "/" for ch in text):
            return 0

        end = start + 1 + len(text)
        self._emit(self._token(start, end, kind="tag", target=text, syntax="hashtag"))
        return end

    def run(self) -> list[Segment]:
        body = self.body
        size = self.size
        fence: str | None = None
        line_end = 0
        i = 0

        while i < size:
            if i == 0 or body[i - 1] == "\n":
                line_end = body.find("\n", i)
                if line_end == -1:
                    line_end = size
                stripped = body[i:line_end].lstrip(" \t")
                if fence is not None:
                    if stripped.startswith(fence):
                        fence = None
                    i = line_end + 1
                    continue
                if stripped.startswith(_FENCES):
                    fence = stripped[:3]
                    i = line_end + 1
                    continue

            ch = body[i]
            resume = 0
            if ch == "`":
                run = 1
                while i + run < line_end and body[i + run] == "`":
                    run += 1
                closing = body.find("`" * run, i + run, line_end)
                resume = closing + run if closing != -1 else i + run
            elif ch == "!" and body.startswith("[[", i + 1):
                resume = self._wikilink(i, i + 1, embed=True)
            elif ch == "!" and body.startswith("[", i + 1):
                resume = self._markdown_link(i, i + 1, image=True)
            elif ch == "[" and body.startswith("[[", i):
                resume = self._wikilink(i, i, embed=False)
            elif ch == "[":
                resume = self._markdown_link(i, i, image=False)
            elif ch == "#":
                resume = self._hashtag(i)

            i = resume or i + 1

        if self.plain_start < size:
            self.segments.append(PlainText(body[self.plain_start :], self.plain_start))
        return self.segments


def scan(body: str) -> list[Segment]:
    """Split a body into tokens and plain text, in order.

    Malformed or nested bracket sequences come back as plain text.

    Args:
        body: Document body (header already removed).

    Returns:
        Segments covering the whole body, in order.
    """
    return _Scanner(body).run()


def extract_references(body: str) -> list[Token]:
    """Extract link and tag tokens from a body, in first-occurrence order.

    Duplicates are kept: each occurrence renders on its own.
    """
    return [segment for segment in scan(body) if isinstance(segment, Token)]
