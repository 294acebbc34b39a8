from __future__ import annotations

"""
Domain Error Taxonomy.

Separates fatal configuration failures, which abort a whole traversal, from
per-file failures, which only end the chain of the file that raised them and
are reported to the completion callback as exit code -1.
"""

# -----------------------------------------------------------------------------
# BASE
# -----------------------------------------------------------------------------

class DirunError(Exception):
    """Root of every error raised by the dirun package."""


# -----------------------------------------------------------------------------
# FATAL (TRAVERSAL-WIDE)
# -----------------------------------------------------------------------------

class ConfigError(DirunError):
    """Invalid configuration. Aborts the whole traversal."""


class InvalidPatternError(ConfigError):
    """The file-name filter cannot be used to list a directory."""

    def __init__(self, pattern: str):
        super().__init__(f"invalid FILES argument: {pattern}")
        self.pattern = pattern


# -----------------------------------------------------------------------------
# NON-FATAL (SUBTREE)
# -----------------------------------------------------------------------------

class AccessDeniedError(DirunError):
    """A directory listing was refused by the operating system."""

    def __init__(self, path: str):
        super().__init__(f"access denied: {path}")
        self.path = path


# -----------------------------------------------------------------------------
# PER-FILE
# -----------------------------------------------------------------------------

class ExecutionError(DirunError):
    """Base for failures that end a single file's command chain."""


class RedirectionError(ExecutionError):
    """A redirection target could not be opened."""


class LaunchError(ExecutionError):
    """The external process could not be started."""


class UnsupportedFeatureError(ExecutionError):
    """A parsed construct has no execution support (the pipe operator)."""
