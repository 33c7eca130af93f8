"""Pydantic models for the content graph."""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

NodeState = Literal["published", "draft", "placeholder"]
LinkState = Literal["resolved", "unpublished", "unresolved"]
DiagnosticKind = Literal[
    "malformed_metadata",
    "unreadable_source",
    "duplicate_path",
    "alias_conflict",
    "unresolved_reference",
]


def _number_as_text(value: Any) -> Any:
    # YAML reads `title: 1984` or `tags: [2024]` as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class DocumentMetadata(BaseModel):
    """Recognised fields of a document's metadata header.

    Spellings are folded to these names by the loader before validation;
    unrecognised keys never reach this model.
    """

    title: str | None = None
    tags: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    created: datetime | None = None
    updated: datetime | None = None
    draft: bool = False
    publish: bool | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _numeric_title(cls, value: Any) -> Any:
        return _number_as_text(value)

    @field_validator("tags", "aliases", mode="before")
    @classmethod
    def _split_string_lists(cls, value: Any) -> Any:
        # "a, b" is accepted as shorthand for [a, b]
        if value is None:
            return []
        value = _number_as_text(value)
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, list):
            return [_number_as_text(item) for item in value]
        return value

    @field_validator("created", "updated", mode="before")
    @classmethod
    def _promote_dates(cls, value: Any) -> Any:
        # YAML loads 2024-01-15 as a date
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime(value.year, value.month, value.day)
        return value

    @field_validator("draft", mode="before")
    @classmethod
    def _empty_draft(cls, value: Any) -> Any:
        return False if value is None else value


class Document(BaseModel):
    """A loaded document. The canonical path is its identity."""

    model_config = ConfigDict(frozen=True)

    path: str  # Canonical path (unique within a build)
    source_path: str  # Path as supplied by the caller
    title: str
    aliases: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    created: datetime | None = None
    updated: datetime | None = None
    draft: bool = False
    publish: bool | None = None
    body: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)  # Unrecognised header keys


class Reference(BaseModel):
    """One cross-document link occurrence, in body order."""

    model_config = ConfigDict(frozen=True)

    source: str
    raw: str  # Token exactly as written, brackets included
    target_text: str  # Target portion as written
    target: str | None = None  # Canonical path, None when unresolved
    anchor: str | None = None
    display: str | None = None
    embed: bool = False
    syntax: Literal["wikilink", "markdown"] = "wikilink"
    start: int = 0
    end: int = 0
    line: int = 1
    column: int = 1

    @property
    def resolved(self) -> bool:
        return self.target is not None


class Edge(BaseModel):
    """A directed edge, collapsed per (source, target) pair."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    count: int = 1  # Number of raw references behind this edge
    embed: bool = False  # At least one occurrence is an embed
    unpublished: bool = False
    navigable: bool = True


class GraphNode(BaseModel):
    """A document node."""

    model_config = ConfigDict(frozen=True)

    path: str
    title: str
    state: NodeState = "published"
    tags: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()
    created: datetime | None = None
    updated: datetime | None = None


class Placeholder(BaseModel):
    """An unresolved link target, rendered inert by the emitter."""

    model_config = ConfigDict(frozen=True)

    key: str  # Normalised token
    text: str  # Target text of the first occurrence
    referrers: tuple[str, ...] = ()
    state: Literal["placeholder"] = "placeholder"


def derive_backlinks(edges: tuple[Edge, ...]) -> dict[str, tuple[str, ...]]:
    """Reverse an edge set: target -> sorted, deduplicated sources."""
    incoming: dict[str, set[str]] = {}
    for edge in edges:
        incoming.setdefault(edge.target, set()).add(edge.source)
    return {target: tuple(sorted(incoming[target])) for target in sorted(incoming)}


class Graph(BaseModel):
    """The resolved content graph handed to an emitter.

    Backlinks are not stored: they are recomputed from ``edges`` on access,
    so the two can never disagree.
    """

    model_config = ConfigDict(frozen=True)

    nodes: dict[str, GraphNode] = Field(default_factory=dict)
    edges: tuple[Edge, ...] = ()
    placeholders: dict[str, Placeholder] = Field(default_factory=dict)
    tags: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def backlinks(self) -> dict[str, tuple[str, ...]]:
        return derive_backlinks(self.edges)

    def outgoing(self, path: str) -> list[Edge]:
        return [edge for edge in self.edges if edge.source == path]

    def incoming(self, path: str) -> list[Edge]:
        return [edge for edge in self.edges if edge.target == path]

    def published(self) -> list[str]:
        return [path for path, node in self.nodes.items() if node.state == "published"]


class Diagnostic(BaseModel):
    """A recoverable problem recorded during a build."""

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    path: str  # Document the problem belongs to
    message: str
    severity: Literal["error", "warning"] = "warning"
    token: str | None = None
    offset: int | None = None
    line: int | None = None
    column: int | None = None
    conflicts_with: str | None = None  # Document already holding a contested key


class BuildResult(BaseModel):
    """Outcome of a build: a (possibly partial) graph plus every diagnostic."""

    graph: Graph
    documents: dict[str, Document] = Field(default_factory=dict)
    references: dict[str, tuple[Reference, ...]] = Field(default_factory=dict)
    diagnostics: tuple[Diagnostic, ...] = ()

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]


class PageLink(BaseModel):
    """A link occurrence as the emitter should render it."""

    raw: str
    text: str  # Display text (override or target as written)
    target: str | None = None
    anchor: str | None = None
    embed: bool = False
    state: LinkState
    navigable: bool = False
    start: int = 0
    end: int = 0


class PageBacklink(BaseModel):
    """A document linking to the page."""

    source: str
    title: str
    navigable: bool


class PageContext(BaseModel):
    """Per-document rendering input."""

    path: str
    title: str
    state: NodeState
    body: str
    tags: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    created: datetime | None = None
    updated: datetime | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
    links: list[PageLink] = Field(default_factory=list)
    backlinks: list[PageBacklink] = Field(default_factory=list)


class Subgraph(BaseModel):
    """Subgraph returned from a neighbourhood query."""

    root: str
    depth: int
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
