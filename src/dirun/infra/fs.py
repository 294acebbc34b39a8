from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides the directory listing primitives used by the traversal engine,
file-name filter validation, and cross-platform path helpers. Listing
failures are translated into the domain error taxonomy so callers never
handle raw OSError subclasses for the expected cases.
"""

import fnmatch
import os
import re
from typing import List, Optional

from dirun.domain.errors import AccessDeniedError, InvalidPatternError

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

APP_DIR_NAME = "dirun"
UNIX_APP_DIR_NAME = ".dirun"

# '*.*' selects every file, including names without an extension
_ALL_FILES_PATTERNS = ("*.*", "*")

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def get_user_data_dir() -> str:
    """
    Resolve the standard OS-specific directory for persistent application data.

    Standards:
    - Windows: %LOCALAPPDATA%/dirun
    - Linux/Mac: ~/.dirun

    Returns:
        str: Absolute path to the application data directory (not created).
    """
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            return os.path.join(base, APP_DIR_NAME)

    return os.path.join(os.path.expanduser("~"), UNIX_APP_DIR_NAME)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute path without a trailing separator.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip() or fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)


# -----------------------------------------------------------------------------
# FILTER PATTERN API
# -----------------------------------------------------------------------------

def validate_pattern(pattern: str) -> None:
    """
    Reject file-name filters that cannot be applied to a single directory.

    Args:
        pattern: Glob-style file-name filter.

    Raises:
        InvalidPatternError: Empty pattern, path separator, '..' or NUL.
    """
    if not pattern or not pattern.strip():
        raise InvalidPatternError(pattern)
    if "\0" in pattern:
        raise InvalidPatternError(pattern)

    separators = [os.sep] + ([os.altsep] if os.altsep else [])
    if any(sep in pattern for sep in separators) or pattern.strip() == "..":
        raise InvalidPatternError(pattern)


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """
    Validate a file-name filter and compile it for repeated matching.

    Args:
        pattern: Glob-style file-name filter.

    Returns:
        re.Pattern: Compiled matcher (case-insensitive on Windows).

    Raises:
        InvalidPatternError: See validate_pattern.
    """
    validate_pattern(pattern)
    if pattern in _ALL_FILES_PATTERNS:
        pattern = "*"
    flags = re.IGNORECASE if os.name == "nt" else 0
    try:
        return re.compile(fnmatch.translate(pattern), flags)
    except re.error as e:
        raise InvalidPatternError(pattern) from e


# -----------------------------------------------------------------------------
# DIRECTORY LISTING API
# -----------------------------------------------------------------------------

def list_files(dir_path: str, pattern: str) -> List[str]:
    """
    List the files of a directory whose name matches a filter.

    Args:
        dir_path: Directory to list.
        pattern: Glob-style file-name filter.

    Returns:
        List[str]: Full paths of matching files, sorted by name.

    Raises:
        InvalidPatternError: The filter is unusable.
        AccessDeniedError: The directory cannot be listed.
    """
    matcher = compile_pattern(pattern)
    found: List[str] = []
    try:
        with os.scandir(dir_path) as it:
            for entry in it:
                if not matcher.match(entry.name):
                    continue
                try:
                    if entry.is_file():
                        found.append(entry.path)
                except OSError:
                    continue
    except PermissionError as e:
        raise AccessDeniedError(dir_path) from e

    found.sort()
    return found


def list_directories(dir_path: str) -> List[str]:
    """
    List the immediate subdirectories of a directory.

    Symbolic links to directories are not followed, so a traversal can
    never enter a cycle.

    Args:
        dir_path: Directory to list.

    Returns:
        List[str]: Full paths of subdirectories, sorted by name.

    Raises:
        AccessDeniedError: The directory cannot be listed.
    """
    found: List[str] = []
    try:
        with os.scandir(dir_path) as it:
            for entry in it:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        found.append(entry.path)
                except OSError:
                    continue
    except PermissionError as e:
        raise AccessDeniedError(dir_path) from e

    found.sort()
    return found
