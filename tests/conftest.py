"""Shared test fixtures for the notegraph test suite.

Design:
- note(): renders a document with a YAML metadata header
- make_document(): builds a Document directly, bypassing the loader
- build_notes: runs a full sequential build over (path, text) pairs
- isolated_logging: restores the package logger after configure_logging()
"""

import logging
import posixpath
from collections.abc import Callable

import pytest
import yaml

from notegraph.config import BuildConfig
from notegraph.models import BuildResult, Document
from notegraph.pipeline import build


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def note(body: str = "", **header) -> str:
    """Render document text with an optional metadata header.

    Usage in tests:
        from conftest import note
        text = note("see [[b]]", tags=["x"], aliases=["bee"])
    """
    if not header:
        return body
    return f"---\n{yaml.safe_dump(header, sort_keys=False)}---\n\n{body}\n"


def make_document(path: str, body: str = "", **fields) -> Document:
    """Build a Document without going through the loader."""
    fields.setdefault("title", posixpath.basename(path))
    fields.setdefault("source_path", f"{path}.md")
    for key in ("aliases", "tags"):
        if key in fields:
            fields[key] = tuple(fields[key])
    return Document(path=path, body=body, **fields)


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def build_notes() -> Callable[..., BuildResult]:
    """Sequential build helper.

    Usage:
        def test_something(build_notes):
            result = build_notes([("a.md", note("see [[b]]"))])
    """

    def _build(sources, **options) -> BuildResult:
        options.setdefault("workers", 1)
        return build(sources, BuildConfig(**options))

    return _build


@pytest.fixture
def isolated_logging():
    """Snapshot and restore the notegraph package logger."""
    logger = logging.getLogger("notegraph")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate

    for handler in handlers:
        logger.removeHandler(handler)

    yield logger

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate
