"""Logging configuration for notegraph.

This module provides consistent logging across the codebase.

Usage in other modules:
    import logging
    log = logging.getLogger(__name__)

    log.debug("Skipped inputs, ambiguous fallback keys")
    log.info("Build summaries")
    log.warning("Recoverable diagnostics as they are recorded")

The library never configures logging on import. An application embedding the
build calls configure_logging() once at startup.

The log level can be configured via the NOTEGRAPH_LOG_LEVEL environment variable:
    - DEBUG: Detailed debugging information
    - INFO: General operational messages (default)
    - WARNING: Unexpected situations that were handled
    - ERROR: Errors that prevented an operation
"""

import logging
import os
import sys

LOG_LEVEL_ENV = "NOTEGRAPH_LOG_LEVEL"
LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _level_from_env() -> int:
    """Numeric level named by NOTEGRAPH_LOG_LEVEL; unknown names mean INFO."""
    level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Attach a stderr handler to the notegraph package logger.

    Does nothing when the logger already has handlers, so an application may
    call it more than once.
    """
    logger = logging.getLogger("notegraph")
    if logger.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_level_from_env())
    logger.propagate = False
