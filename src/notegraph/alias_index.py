"""Alias index for resolving references to canonical paths.

Enables resolution of [[Alias]], [[Title]] and [[file-name]] style links in
addition to path-style [[path/to/entry]] links. One index is built per build
and passed explicitly to the graph builder; nothing is shared between builds.
"""

from __future__ import annotations

import logging
import posixpath
import re
from collections.abc import Iterable
from typing import Literal, NamedTuple

from .config import MARKDOWN_EXTENSIONS
from .models import Diagnostic, Document

log = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class AliasEntry(NamedTuple):
    """An exact key mapping to a path."""

    key: str
    path: str
    origin: Literal["path", "alias"]


def normalize_alias(text: str) -> str:
    """Lower-case and collapse whitespace: "  My   Note " -> "my note"."""
    return _WHITESPACE.sub(" ", text).strip().lower()


def _strip_extension(target: str) -> str:
    lowered = target.lower()
    for extension in MARKDOWN_EXTENSIONS:
        if lowered.endswith(extension):
            return target[: -len(extension)]
    return target


def _join_relative(source: str, target: str) -> str:
    """Resolve target against the directory of source."""
    joined = posixpath.normpath(posixpath.join(posixpath.dirname(source), target))
    return "" if joined == "." else joined


class AliasIndex:
    """Mapping from every known path/alias/title variant to a canonical path.

    Paths and declared aliases are exact keys: the first registration wins
    and a later collision is recorded as an ``alias_conflict``. Titles and
    bare file names are fallback keys, consulted only when no exact key
    matches; a fallback key claimed by two documents resolves to nothing.
    """

    def __init__(self, *, use_titles: bool = True, use_filenames: bool = True) -> None:
        self.use_titles = use_titles
        self.use_filenames = use_filenames
        self.diagnostics: list[Diagnostic] = []
        self._paths: set[str] = set()
        self._exact: dict[str, AliasEntry] = {}
        self._fallback: dict[str, str] = {}
        self._ambiguous: set[str] = set()

    def __len__(self) -> int:
        return len(self._exact)

    def entries(self) -> list[AliasEntry]:
        """Exact entries in registration order."""
        return list(self._exact.values())

    def _claim(self, text: str, path: str, origin: Literal["path", "alias"]) -> Diagnostic | None:
        key = normalize_alias(text)
        if not key:
            return None

        existing = self._exact.get(key)
        if existing is None:
            self._exact[key] = AliasEntry(key, path, origin)
            return None
        if existing.path == path:
            return None

        diagnostic = Diagnostic(
            kind="alias_conflict",
            path=path,
            token=text,
            conflicts_with=existing.path,
            message=(
                f"{origin.capitalize()} '{text}' of {path} is already registered "
                f"for {existing.path}; keeping {existing.path}"
            ),
        )
        log.warning(diagnostic.message)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def _offer_fallback(self, text: str, path: str) -> None:
        key = normalize_alias(text)
        if not key or key in self._ambiguous:
            return
        owner = self._fallback.get(key)
        if owner is None:
            self._fallback[key] = path
        elif owner != path:
            del self._fallback[key]
            self._ambiguous.add(key)
            log.debug("Fallback key '%s' is ambiguous (%s, %s)", key, owner, path)

    def register_path(self, document: Document) -> list[Diagnostic]:
        """Insert a document's canonical path as its self-alias. Idempotent."""
        if document.path in self._paths:
            return []
        self._paths.add(document.path)
        found = self._claim(document.path, document.path, "path")
        return [found] if found else []

    def register(self, document: Document) -> list[Diagnostic]:
        """Insert a document's path, declared aliases and fallback keys.

        Args:
            document: Document to register. Call in load order.

        Returns:
            Conflicts recorded by this registration (also kept in diagnostics).
        """
        found = self.register_path(document)
        for alias in document.aliases:
            conflict = self._claim(alias, document.path, "alias")
            if conflict:
                found.append(conflict)

        if self.use_titles:
            self._offer_fallback(document.title, document.path)
        if self.use_filenames:
            self._offer_fallback(posixpath.basename(document.path), document.path)
        return found

    def resolve(self, token: str, source: str | None = None) -> str | None:
        """Resolve a link target to a canonical path.

        Attempts resolution in order:
        1. Relative path ("./x", "../x") against the source's directory
        2. Exact canonical path
        3. Normalized path or declared alias, with or without its .md suffix
        4. Unambiguous title or file name

        Args:
            token: Link target as written (anchor already removed).
            source: Canonical path of the linking document.

        Returns:
            Canonical path, or None if nothing matches.
        """
        target = _strip_extension(token.strip().replace("\\", "/"))
        if source is not None and target.startswith(("./", "../")):
            target = _join_relative(source, target)
        target = target.strip("/")
        if not target:
            return None

        if target in self._paths:
            return target

        key = normalize_alias(target)
        entry = self._exact.get(key) or self._exact.get(normalize_alias(token))
        if entry is not None:
            return entry.path
        return self._fallback.get(key)

    def resolve_path(self, token: str, source: str | None = None) -> str | None:
        """Resolve a markdown-link href: paths only, no aliases or titles.

        The href is tried relative to the source's directory, then relative
        to the root.
        """
        target = _strip_extension(token.strip().replace("\\", "/"))
        candidates = []
        if source is not None and not target.startswith("/"):
            candidates.append(_join_relative(source, target))
        candidates.append(posixpath.normpath(target).strip("/") if target else "")

        for candidate in candidates:
            if not candidate or candidate == ".":
                continue
            if candidate in self._paths:
                return candidate
            entry = self._exact.get(normalize_alias(candidate))
            if entry is not None and entry.origin == "path":
                return entry.path
        return None


def build_alias_index(
    documents: Iterable[Document],
    *,
    use_titles: bool = True,
    use_filenames: bool = True,
) -> AliasIndex:
    """Build the alias index for one build.

    Every canonical path is registered before any declared alias, so a
    document's own path always resolves to it.

    Args:
        documents: Loaded documents in load order.
        use_titles: Let titles act as fallback keys.
        use_filenames: Let bare file names act as fallback keys.

    Returns:
        The populated index; conflicts are in ``index.diagnostics``.
    """
    documents = list(documents)
    index = AliasIndex(use_titles=use_titles, use_filenames=use_filenames)
    for document in documents:
        index.register_path(document)
    for document in documents:
        index.register(document)
    log.debug("Alias index: %d keys, %d conflicts", len(index), len(index.diagnostics))
    return index
