"""Content graph construction and link resolution for note collections."""

from .alias_index import AliasIndex, build_alias_index, normalize_alias
from .config import BuildConfig, ConfigurationError, load_build_config
from .drafts import apply_draft_filter, draft_flags, is_draft
from .emitter import Emitter, build_page_contexts, publish
from .graph import GraphBuilder, build_graph, query_neighborhood
from .models import BuildResult, Diagnostic, Document, Edge, Graph, GraphNode, PageContext, Reference
from .pipeline import BuildError, GraphPipeline, SourceEnumerationError, SourceFile, build
from .tags import apply_tag_index, build_tag_index

__all__ = [
    "build",
    "GraphPipeline",
    "SourceFile",
    "BuildError",
    "SourceEnumerationError",
    "BuildConfig",
    "ConfigurationError",
    "load_build_config",
    "AliasIndex",
    "build_alias_index",
    "normalize_alias",
    "GraphBuilder",
    "build_graph",
    "query_neighborhood",
    "apply_draft_filter",
    "draft_flags",
    "is_draft",
    "build_tag_index",
    "apply_tag_index",
    "Emitter",
    "build_page_contexts",
    "publish",
    "BuildResult",
    "Diagnostic",
    "Document",
    "Edge",
    "Graph",
    "GraphNode",
    "PageContext",
    "Reference",
]
