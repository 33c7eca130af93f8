"""Tag normalisation and the published tag index."""

from __future__ import annotations

import logging
import re

from .models import Graph

log = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_tag(tag: str) -> str:
    """Normalize a tag as written in a header or body.

    Strips a leading "#", replaces inner whitespace with "-" and drops empty
    hierarchy segments, so " #Project / Alpha Beta" becomes "Project/Alpha-Beta".
    """
    segments = [
        _WHITESPACE.sub("-", segment.strip())
        for segment in tag.strip().lstrip("#").split("/")
    ]
    return "/".join(segment for segment in segments if segment)


def tag_prefixes(tag: str) -> list[str]:
    """All hierarchy levels of a tag: "a/b/c" -> ["a", "a/b", "a/b/c"]."""
    segments = tag.split("/")
    return ["/".join(segments[: i + 1]) for i in range(len(segments))]


def build_tag_index(graph: Graph, *, expand_hierarchy: bool = True) -> dict[str, tuple[str, ...]]:
    """Group published documents by tag.

    Drafts are excluded. Tags and the paths within each group are sorted, so
    the result is identical for identical input. A document without tags is
    simply absent.

    Args:
        graph: Graph whose node states are already final.
        expand_hierarchy: Also place a document tagged "a/b" under "a".

    Returns:
        Mapping of tag -> sorted tuple of canonical paths.
    """
    groups: dict[str, set[str]] = {}
    for path, node in graph.nodes.items():
        if node.state != "published":
            continue
        for tag in node.tags:
            for key in tag_prefixes(tag) if expand_hierarchy else [tag]:
                groups.setdefault(key, set()).add(path)

    log.debug("Tag index: %d tags", len(groups))
    return {tag: tuple(sorted(groups[tag])) for tag in sorted(groups)}


def apply_tag_index(graph: Graph, *, expand_hierarchy: bool = True) -> Graph:
    """Return the graph with its tag groups filled in."""
    return graph.model_copy(
        update={"tags": build_tag_index(graph, expand_hierarchy=expand_hierarchy)}
    )
