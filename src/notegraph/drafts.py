"""Draft filtering.

Drafts stay in the graph as nodes and keep their outgoing edges. What
changes is how links *into* them are presented: an edge whose target is a
draft is marked unpublished and is never navigable, whoever links to it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .models import Document, Graph

log = logging.getLogger(__name__)


def is_draft(document: Document, *, explicit_publish: bool = False) -> bool:
    """Whether a document is withheld from publication.

    In explicit-publish mode only ``publish: true`` publishes. Otherwise a
    document is a draft when it says ``draft: true`` or ``publish: false``.
    """
    if explicit_publish:
        return document.publish is not True
    return document.draft or document.publish is False


def draft_flags(documents: Iterable[Document], *, explicit_publish: bool = False) -> dict[str, bool]:
    """Canonical path -> draft flag for every document."""
    return {
        document.path: is_draft(document, explicit_publish=explicit_publish)
        for document in documents
    }


def apply_draft_filter(graph: Graph, drafts: Mapping[str, bool]) -> Graph:
    """Tag nodes published/draft and annotate edges into drafts.

    No node or edge is removed.

    Args:
        graph: Graph from the graph builder.
        drafts: Draft flag per canonical path; missing paths are published.

    Returns:
        A new graph with final node states and edge visibility.
    """
    nodes = {
        path: node.model_copy(update={"state": "draft" if drafts.get(path, False) else "published"})
        for path, node in graph.nodes.items()
    }
    edges = tuple(
        edge.model_copy(
            update={
                "unpublished": drafts.get(edge.target, False),
                "navigable": not drafts.get(edge.target, False),
            }
        )
        for edge in graph.edges
    )

    hidden = sum(1 for edge in edges if edge.unpublished)
    log.debug(
        "Draft filter: %d drafts, %d edges into unpublished content",
        sum(1 for node in nodes.values() if node.state == "draft"),
        hidden,
    )
    return graph.model_copy(update={"nodes": nodes, "edges": edges})
