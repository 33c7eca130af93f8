"""Content graph built from resolved references."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from typing import Literal

from .alias_index import AliasIndex, normalize_alias
from .models import Diagnostic, Document, Edge, Graph, GraphNode, Placeholder, Reference, Subgraph
from .parser.references import Token

log = logging.getLogger(__name__)


class GraphBuilder:
    """Resolves extracted tokens against an alias index and collects edges.

    Single-writer: run it once the alias index holds every document.
    Unresolved references become placeholders and diagnostics, never errors.
    """

    def __init__(self, alias_index: AliasIndex) -> None:
        self.alias_index = alias_index
        self.diagnostics: list[Diagnostic] = []
        self.references: dict[str, tuple[Reference, ...]] = {}

    def _resolve(self, document: Document, token: Token) -> str | None:
        if token.syntax == "markdown":
            return self.alias_index.resolve_path(token.target, document.path)
        return self.alias_index.resolve(token.target, document.path)

    def _unresolved(self, document: Document, token: Token) -> None:
        diagnostic = Diagnostic(
            kind="unresolved_reference",
            path=document.path,
            token=token.target,
            offset=token.start,
            line=token.line,
            column=token.column,
            message=(
                f"{document.path}:{token.line}:{token.column}: "
                f"unresolved reference {token.raw}"
            ),
        )
        log.warning(diagnostic.message)
        self.diagnostics.append(diagnostic)

    def build(self, documents: Iterable[Document], tokens: Mapping[str, Sequence[Token]]) -> Graph:
        """Build the graph for a document set.

        Args:
            documents: Loaded documents.
            tokens: Extracted tokens per canonical path. Tag tokens are ignored.

        Returns:
            Graph with every document as a published node; the draft filter
            assigns final states.
        """
        nodes: dict[str, GraphNode] = {}
        # (source, target) -> [count, embed], insertion order = first occurrence
        edges: dict[tuple[str, str], list] = {}
        placeholders: dict[str, tuple[str, set[str]]] = {}

        for document in sorted(documents, key=lambda d: d.path):
            nodes[document.path] = GraphNode(
                path=document.path,
                title=document.title,
                tags=document.tags,
                aliases=document.aliases,
                created=document.created,
                updated=document.updated,
            )

            references: list[Reference] = []
            for token in tokens.get(document.path, ()):
                if token.kind != "link":
                    continue

                target = self._resolve(document, token)
                references.append(
                    Reference(
                        source=document.path,
                        raw=token.raw,
                        target_text=token.target,
                        target=target,
                        anchor=token.anchor,
                        display=token.display,
                        embed=token.embed,
                        syntax="markdown" if token.syntax == "markdown" else "wikilink",
                        start=token.start,
                        end=token.end,
                        line=token.line,
                        column=token.column,
                    )
                )

                if target is None:
                    self._unresolved(document, token)
                    key = normalize_alias(token.target)
                    placeholders.setdefault(key, (token.target, set()))[1].add(document.path)
                    continue

                edge = edges.setdefault((document.path, target), [0, False])
                edge[0] += 1
                edge[1] = edge[1] or token.embed

            self.references[document.path] = tuple(references)

        graph = Graph(
            nodes=nodes,
            edges=tuple(
                Edge(source=source, target=target, count=count, embed=embed)
                for (source, target), (count, embed) in edges.items()
            ),
            placeholders={
                key: Placeholder(key=key, text=text, referrers=tuple(sorted(referrers)))
                for key, (text, referrers) in sorted(placeholders.items())
            },
        )
        log.debug(
            "Graph: %d nodes, %d edges, %d placeholders",
            len(graph.nodes),
            len(graph.edges),
            len(graph.placeholders),
        )
        return graph


def build_graph(
    documents: Iterable[Document],
    tokens: Mapping[str, Sequence[Token]],
    alias_index: AliasIndex,
) -> tuple[Graph, dict[str, tuple[Reference, ...]], list[Diagnostic]]:
    """Build a graph and return it with per-document references and diagnostics."""
    builder = GraphBuilder(alias_index)
    graph = builder.build(documents, tokens)
    return graph, builder.references, builder.diagnostics


def query_neighborhood(
    graph: Graph,
    root: str,
    *,
    depth: int = 1,
    direction: Literal["outgoing", "incoming", "both"] = "both",
    include_drafts: bool = True,
) -> Subgraph:
    """Breadth-first subgraph around a document, safe on cycles.

    Args:
        graph: A built graph.
        root: Canonical path of the starting document.
        depth: Maximum number of hops from the root.
        direction: Follow outgoing links, backlinks, or both.
        include_drafts: When False, draft nodes (other than the root) and
            their edges are left out.

    Raises:
        ValueError: If the root is not a node or depth is negative.
    """
    if root not in graph.nodes:
        raise ValueError(f"Document not found in graph: {root}")
    if depth < 0:
        raise ValueError(f"depth must be >= 0, got {depth}")

    outgoing: dict[str, list[Edge]] = {}
    incoming: dict[str, list[Edge]] = {}
    for edge in graph.edges:
        outgoing.setdefault(edge.source, []).append(edge)
        incoming.setdefault(edge.target, []).append(edge)

    def node_allowed(path: str) -> bool:
        return include_drafts or path == root or graph.nodes[path].state != "draft"

    visited: set[str] = {root}
    collected: dict[tuple[str, str], Edge] = {}
    queue: deque[tuple[str, int]] = deque([(root, 0)])

    while queue:
        node, current_depth = queue.popleft()
        if current_depth >= depth:
            continue

        neighbors: list[tuple[str, Edge]] = []
        if direction in ("outgoing", "both"):
            neighbors.extend((edge.target, edge) for edge in outgoing.get(node, []))
        if direction in ("incoming", "both"):
            neighbors.extend((edge.source, edge) for edge in incoming.get(node, []))

        for neighbor, edge in neighbors:
            if not node_allowed(neighbor):
                continue
            collected.setdefault((edge.source, edge.target), edge)
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append((neighbor, current_depth + 1))

    return Subgraph(
        root=root,
        depth=depth,
        nodes=[graph.nodes[path] for path in sorted(visited)],
        edges=[collected[key] for key in sorted(collected)],
    )
