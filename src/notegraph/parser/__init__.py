"""Document loading and reference extraction."""

from .markdown import MalformedMetadata, ParseError, canonical_path, load_document
from .references import PlainText, Segment, Token, extract_references, scan

__all__ = [
    "load_document",
    "canonical_path",
    "ParseError",
    "MalformedMetadata",
    "scan",
    "extract_references",
    "Token",
    "PlainText",
    "Segment",
]
