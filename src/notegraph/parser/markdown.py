"""Document loading with YAML metadata header support."""

import posixpath
from typing import Any

import yaml
from frontmatter import YAMLHandler
from pydantic import ValidationError

from ..config import MARKDOWN_EXTENSIONS, RECOGNIZED_HEADER_KEYS
from ..models import Document, DocumentMetadata
from ..tags import normalize_tag

_HANDLER = YAMLHandler()

# Header spelling -> model field, e.g. "lastmod" -> "updated"
_FIELD_BY_SPELLING = {
    spelling: name
    for name, spellings in RECOGNIZED_HEADER_KEYS.items()
    for spelling in spellings
}


class ParseError(Exception):
    """Raised when a document cannot be loaded."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class MalformedMetadata(ParseError):
    """Raised when a metadata header is structurally invalid."""


def canonical_path(path: str) -> str:
    """Normalize a source path into a document identifier.

    - Uses forward slashes
    - Drops leading "./" and "/"
    - Collapses "." segments and duplicate separators
    - Removes a markdown extension

    Args:
        path: Path as supplied by the file-discovery collaborator.

    Returns:
        Canonical path, or "" if the path names nothing.
    """
    normalized = str(path).strip().replace("\\", "/")
    if not normalized:
        return ""

    normalized = posixpath.normpath(normalized).lstrip("/")
    if normalized == ".":
        return ""

    lowered = normalized.lower()
    for extension in MARKDOWN_EXTENSIONS:
        if lowered.endswith(extension):
            normalized = normalized[: -len(extension)]
            break

    return normalized.rstrip("/")


def _read_header(path: str, text: str) -> tuple[dict[str, Any], str]:
    """Split text into (header mapping, body).

    Text without a leading "---" line has no header and is all body.
    """
    if not _HANDLER.detect(text):
        return {}, text

    try:
        header_text, body = _HANDLER.split(text)
    except ValueError as e:
        raise MalformedMetadata(path, "Unterminated metadata header") from e

    try:
        data = _HANDLER.load(header_text)
    except yaml.YAMLError as e:
        raise MalformedMetadata(path, f"Failed to parse metadata header: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedMetadata(
            path, f"Metadata header must be a mapping, got {type(data).__name__}"
        )

    return data, body.lstrip("\r\n")


def _split_recognized(header: dict[Any, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate recognised keys from opaque ones.

    The first spelling of a field wins; a repeated field under another
    spelling is kept as an opaque key.
    """
    recognized: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in header.items():
        name = _FIELD_BY_SPELLING.get(str(key))
        if name is None or name in recognized:
            extra[str(key)] = value
        else:
            recognized[name] = value
    return recognized, extra


def _unique(values: list[str], *, casefold: bool = False) -> tuple[str, ...]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        key = value.casefold() if casefold else value
        if value and key not in seen:
            seen.add(key)
            result.append(value)
    return tuple(result)


def load_document(path: str, text: str) -> Document:
    """Load one document from its raw text.

    Args:
        path: Source path of the document.
        text: Raw document text, header included.

    Returns:
        A normalized Document. Inline #tags are not merged here.

    Raises:
        ParseError: If the path does not name a document.
        MalformedMetadata: If the header is unterminated, is not valid YAML,
            is not a mapping, or a recognised key has the wrong type.
    """
    identifier = canonical_path(path)
    if not identifier:
        raise ParseError(path, "Path does not name a document")

    header, body = _read_header(path, text.lstrip("\ufeff"))
    recognized, extra = _split_recognized(header)

    try:
        metadata = DocumentMetadata.model_validate(recognized)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")
        raise MalformedMetadata(path, "Invalid metadata header:\n" + "\n".join(errors)) from e

    title = (metadata.title or "").strip() or posixpath.basename(identifier)

    return Document(
        path=identifier,
        source_path=str(path),
        title=title,
        aliases=_unique([alias.strip() for alias in metadata.aliases], casefold=True),
        tags=_unique([normalize_tag(tag) for tag in metadata.tags]),
        created=metadata.created,
        updated=metadata.updated,
        draft=metadata.draft,
        publish=metadata.publish,
        body=body,
        extra=extra,
    )
