"""Graph build orchestrator.

Processes a snapshot of (path, text) inputs into a resolved content graph.
Two passes, because any document may be the forward target of any other:

1. Load every document and extract its references (fanned out per document)
2. Build the alias index from the complete document set
3. Resolve references into edges, placeholders and backlinks
4. Apply the draft filter
5. Group published documents by tag

Every recoverable problem becomes a Diagnostic; only an input enumeration
that cannot be read at all aborts the build.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from fnmatch import fnmatch
from functools import partial

from .alias_index import build_alias_index
from .config import BuildConfig
from .drafts import apply_draft_filter, draft_flags
from .graph import build_graph
from .models import BuildResult, Diagnostic, Document
from .parser import MalformedMetadata, ParseError, Token, canonical_path, extract_references, load_document
from .tags import apply_tag_index, normalize_tag

log = logging.getLogger(__name__)


class BuildError(Exception):
    """Raised when a build cannot run at all."""

    pass


class SourceEnumerationError(BuildError):
    """Raised when the input set cannot be enumerated."""

    pass


@dataclass(frozen=True)
class SourceFile:
    """One input supplied by the file-discovery collaborator."""

    path: str
    text: str | bytes


@dataclass
class _Loaded:
    """Outcome of loading one source."""

    source: SourceFile
    document: Document | None = None
    tokens: list[Token] = field(default_factory=list)
    diagnostic: Diagnostic | None = None


def _failure(source: SourceFile, kind: str, message: str) -> _Loaded:
    diagnostic = Diagnostic(kind=kind, path=str(source.path), message=message, severity="error")
    log.warning(diagnostic.message)
    return _Loaded(source=source, diagnostic=diagnostic)


def _load_one(source: SourceFile, *, inline_tags: bool) -> _Loaded:
    """Load and extract a single source. Touches no shared state."""
    text = source.text
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            return _failure(source, "unreadable_source", f"{source.path}: not valid UTF-8: {e}")

    try:
        document = load_document(source.path, text)
    except MalformedMetadata as e:
        return _failure(source, "malformed_metadata", str(e))
    except ParseError as e:
        return _failure(source, "unreadable_source", str(e))

    tokens = extract_references(document.body)
    if inline_tags:
        inline = [normalize_tag(token.target) for token in tokens if token.kind == "tag"]
        merged = tuple(dict.fromkeys(tag for tag in (*document.tags, *inline) if tag))
        if merged != document.tags:
            document = document.model_copy(update={"tags": merged})

    return _Loaded(source=source, document=document, tokens=tokens)


def _as_source(item: SourceFile | tuple[str, str | bytes]) -> SourceFile:
    if isinstance(item, SourceFile):
        return item
    path, text = item
    return SourceFile(path=str(path), text=text)


class GraphPipeline:
    """Runs builds with a fixed configuration.

    Each call to build() is independent: the alias index and every other
    intermediate structure are created inside the call.
    """

    def __init__(self, config: BuildConfig | None = None) -> None:
        self.config = config or BuildConfig()

    def _enumerate(self, sources: Iterable[SourceFile | tuple[str, str | bytes]] | None) -> list[SourceFile]:
        if sources is None:
            raise SourceEnumerationError("No input set supplied")

        try:
            items = [_as_source(item) for item in sources]
        except Exception as e:
            raise SourceEnumerationError(f"Cannot enumerate inputs: {e}") from e

        selected: list[SourceFile] = []
        for item in items:
            canonical = canonical_path(item.path)
            if any(fnmatch(canonical, pattern) for pattern in self.config.exclude):
                log.debug("Excluded %s", item.path)
                continue
            selected.append(item)

        # Load order is canonical-path order, whatever order the caller used
        return sorted(selected, key=lambda s: (canonical_path(s.path), s.path))

    def _load_all(self, sources: list[SourceFile]) -> list[_Loaded]:
        load = partial(_load_one, inline_tags=self.config.inline_tags)
        if self.config.workers > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                return list(executor.map(load, sources))
        return [load(source) for source in sources]

    def build(self, sources: Iterable[SourceFile | tuple[str, str | bytes]] | None) -> BuildResult:
        """Build the graph for one input snapshot.

        Args:
            sources: (path, text) pairs or SourceFile objects. Text may be
                bytes, which must be UTF-8.

        Returns:
            BuildResult holding the graph, documents, per-document references
            and the ordered diagnostics list.

        Raises:
            SourceEnumerationError: If the inputs cannot be enumerated.
        """
        inputs = self._enumerate(sources)
        diagnostics: list[Diagnostic] = []

        # Pass 1: load + extract
        documents: dict[str, Document] = {}
        tokens: dict[str, list[Token]] = {}
        for loaded in self._load_all(inputs):
            if loaded.diagnostic is not None:
                diagnostics.append(loaded.diagnostic)
                continue

            document = loaded.document
            if document.path in documents:
                diagnostic = Diagnostic(
                    kind="duplicate_path",
                    path=document.path,
                    conflicts_with=documents[document.path].source_path,
                    message=(
                        f"{document.source_path} maps to {document.path}, already loaded "
                        f"from {documents[document.path].source_path}; dropping it"
                    ),
                )
                log.warning(diagnostic.message)
                diagnostics.append(diagnostic)
                continue

            documents[document.path] = document
            tokens[document.path] = loaded.tokens

        # Pass 2: resolve against the complete index
        alias_index = build_alias_index(
            documents.values(),
            use_titles=self.config.resolve_titles,
            use_filenames=self.config.resolve_filenames,
        )
        diagnostics.extend(alias_index.diagnostics)

        graph, references, unresolved = build_graph(documents.values(), tokens, alias_index)
        diagnostics.extend(unresolved)

        graph = apply_draft_filter(
            graph, draft_flags(documents.values(), explicit_publish=self.config.explicit_publish)
        )
        graph = apply_tag_index(graph, expand_hierarchy=self.config.expand_tag_hierarchy)

        log.info(
            "Built graph: %d documents (%d published), %d edges, %d diagnostics",
            len(graph.nodes),
            len(graph.published()),
            len(graph.edges),
            len(diagnostics),
        )
        return BuildResult(
            graph=graph,
            documents=documents,
            references=references,
            diagnostics=tuple(diagnostics),
        )


def build(
    sources: Iterable[SourceFile | tuple[str, str | bytes]] | None,
    config: BuildConfig | None = None,
) -> BuildResult:
    """Build a content graph. See GraphPipeline.build()."""
    return GraphPipeline(config).build(sources)
