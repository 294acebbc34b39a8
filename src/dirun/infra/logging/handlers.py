from __future__ import annotations

"""
Logging Handlers and Low-Level Utilities.

Builds the handlers attached behind the queue listener and tags each one,
so that reconfiguration only ever removes handlers dirun installed itself.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

_HANDLER_TAG_ATTR: str = "_dirun_handler"


# ==============================================================================
# HANDLER TAGGING
# ==============================================================================

def _tag_handler(handler: logging.Handler) -> None:
    """Mark a handler as installed by dirun."""
    setattr(handler, _HANDLER_TAG_ATTR, True)


def _is_our_handler(handler: logging.Handler) -> bool:
    return bool(getattr(handler, _HANDLER_TAG_ATTR, False))


# ==============================================================================
# HANDLER FACTORIES
# ==============================================================================

def _create_console_handler(level_int: int, formatter: logging.Formatter) -> logging.Handler:
    """Build the tagged stderr handler."""
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level_int)
    sh.setFormatter(formatter)
    _tag_handler(sh)
    return sh


def _create_rotating_file_handler(
        log_file: str,
        level_int: int,
        formatter: logging.Formatter,
        max_bytes: int,
        backup_count: int,
) -> Optional[RotatingFileHandler]:
    """
    Build the tagged rotating file handler.

    Args:
        log_file: Target path for the log file.
        level_int: Numeric logging level.
        formatter: Record formatter.
        max_bytes: Rollover threshold in bytes.
        backup_count: Number of archived files to keep.

    Returns:
        Optional[RotatingFileHandler]: The handler, or None if the file
                                       cannot be opened.
    """
    try:
        _ensure_parent_dir(log_file)
        fh = RotatingFileHandler(
            log_file,
            maxBytes=int(max_bytes),
            backupCount=int(backup_count),
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"warning: cannot open log file '{log_file}': {e}\n")
        return None

    fh.setLevel(level_int)
    fh.setFormatter(formatter)
    _tag_handler(fh)
    return fh


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(os.path.abspath(path))
    if parent:
        os.makedirs(parent, exist_ok=True)
