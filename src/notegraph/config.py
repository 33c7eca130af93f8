"""Configuration management for notegraph.

This module contains all configurable constants for the graph build.
Magic numbers and recognised spellings are documented here rather than
scattered throughout the codebase.

Example notegraph.yaml:
    workers: 8
    exclude:
      - private/*
      - templates/*
    expand_tag_hierarchy: true
    explicit_publish: false
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


# =============================================================================
# Metadata Header
# =============================================================================

# Keys the loader interprets, with every spelling accepted for each.
# Anything else in a header is kept opaquely for the emitter.
RECOGNIZED_HEADER_KEYS: dict[str, tuple[str, ...]] = {
    "title": ("title",),
    "tags": ("tags", "tag"),
    "aliases": ("aliases", "alias"),
    "created": ("created", "date"),
    "updated": ("updated", "modified", "lastmod"),
    "draft": ("draft",),
    "publish": ("publish",),
}

# File extensions stripped when turning a source path into a canonical path
MARKDOWN_EXTENSIONS = (".md", ".markdown")


# =============================================================================
# Concurrency
# =============================================================================

# Thread fan-out for the load + extract stages. These stages are independent
# per document; everything after the alias index is single-writer.
WORKERS_ENV = "NOTEGRAPH_WORKERS"
DEFAULT_WORKERS = 4


def get_default_workers() -> int:
    """Worker count from NOTEGRAPH_WORKERS, falling back to DEFAULT_WORKERS.

    Raises:
        ConfigurationError: If the variable is set but not an integer.
    """
    raw = os.environ.get(WORKERS_ENV)
    if not raw:
        return DEFAULT_WORKERS
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{WORKERS_ENV} must be an integer, got {raw!r}")


@dataclass
class BuildConfig:
    """Options for a single graph build."""

    workers: int = field(default_factory=get_default_workers)
    """Thread pool width for loading and extraction. <= 1 runs sequentially."""

    exclude: list[str] = field(default_factory=list)
    """Glob patterns matched against canonical paths; matches are not loaded."""

    resolve_titles: bool = True
    """Let document titles act as fallback reference keys."""

    resolve_filenames: bool = True
    """Let the last path segment act as a fallback reference key."""

    inline_tags: bool = True
    """Merge #tag references found in the body into the document's tags."""

    expand_tag_hierarchy: bool = True
    """A document tagged a/b is also grouped under a."""

    explicit_publish: bool = False
    """Only documents with publish: true are published; all others are drafts."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuildConfig":
        """Create a BuildConfig from a parsed YAML mapping.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong type.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key == "workers":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigurationError(f"workers must be an integer, got {value!r}")
            elif key == "exclude":
                if isinstance(value, str):
                    value = [value]
                if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
                    raise ConfigurationError("exclude must be a list of glob strings")
            elif not isinstance(value, bool):
                raise ConfigurationError(f"{key} must be true or false, got {value!r}")
            kwargs[key] = value
        return cls(**kwargs)


def load_build_config(path: Path) -> BuildConfig:
    """Load a BuildConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        BuildConfig with file values over defaults.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    # Handle empty file or all-comments file
    if data is None:
        return BuildConfig()

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")

    return BuildConfig.from_dict(data)
