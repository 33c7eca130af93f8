"""Boundary towards emitters: per-document rendering inputs.

An emitter turns the graph into output (HTML pages, a search index, a graph
view). This module only prepares what it needs and decides nothing about
rendering; in particular it never writes files.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from .models import BuildResult, Diagnostic, Graph, PageBacklink, PageContext, PageLink, Reference

log = logging.getLogger(__name__)


class Emitter(Protocol):
    """Anything that can consume a finished build."""

    def emit(
        self,
        graph: Graph,
        pages: Sequence[PageContext],
        diagnostics: Sequence[Diagnostic],
    ) -> None: ...


def _page_link(reference: Reference, graph: Graph) -> PageLink:
    if reference.target is None:
        state, navigable = "unresolved", False
    elif graph.nodes[reference.target].state == "draft":
        state, navigable = "unpublished", False
    else:
        state, navigable = "resolved", True

    return PageLink(
        raw=reference.raw,
        text=reference.display or reference.target_text,
        target=reference.target,
        anchor=reference.anchor,
        embed=reference.embed,
        state=state,
        navigable=navigable,
        start=reference.start,
        end=reference.end,
    )


def build_page_contexts(result: BuildResult, *, include_drafts: bool = False) -> list[PageContext]:
    """Rendering input for each document, in canonical path order.

    Links into drafts are marked unpublished and are not navigable; so are
    backlinks coming from drafts.

    Args:
        result: A finished build.
        include_drafts: Also produce pages for drafts (e.g. for previews).

    Returns:
        One PageContext per selected document.
    """
    graph = result.graph
    backlinks = graph.backlinks
    pages: list[PageContext] = []

    for path, node in graph.nodes.items():
        if node.state == "draft" and not include_drafts:
            continue
        document = result.documents[path]
        pages.append(
            PageContext(
                path=path,
                title=node.title,
                state=node.state,
                body=document.body,
                tags=list(node.tags),
                aliases=list(node.aliases),
                created=node.created,
                updated=node.updated,
                extra=dict(document.extra),
                links=[_page_link(ref, graph) for ref in result.references.get(path, ())],
                backlinks=[
                    PageBacklink(
                        source=source,
                        title=graph.nodes[source].title,
                        navigable=graph.nodes[source].state == "published",
                    )
                    for source in backlinks.get(path, ())
                ],
            )
        )

    return pages


def publish(result: BuildResult, emitter: Emitter, *, include_drafts: bool = False) -> list[PageContext]:
    """Hand a finished build to an emitter.

    Returns:
        The page contexts that were emitted.
    """
    pages = build_page_contexts(result, include_drafts=include_drafts)
    log.info("Emitting %d pages with %d diagnostics", len(pages), len(result.diagnostics))
    emitter.emit(result.graph, pages, result.diagnostics)
    return pages
