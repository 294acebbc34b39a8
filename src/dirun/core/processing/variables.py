from __future__ import annotations

"""
Per-File Variable Substitution.

Expands the case-insensitive '%DIRUN_<NAME>%' markers that may appear in an
executable path, an argument string, a redirection target or the working
directory. Values are derived from the file task being executed.
"""

import os
import re
from typing import Callable, Dict, List

from dirun.domain.tree_models import FileTask

# -----------------------------------------------------------------------------
# MARKER SYNTAX
# -----------------------------------------------------------------------------

VARIABLE_PREFIX = "%DIRUN_"

# The name runs up to the next '%'. A match always consumes the closing '%',
# so an unknown name is skipped as a whole and never matched again.
_MARKER_RX = re.compile(r"%DIRUN_([^%]*)%", re.IGNORECASE)
_PREFIX_RX = re.compile(re.escape(VARIABLE_PREFIX), re.IGNORECASE)


def _extension(path: str) -> str:
    return os.path.splitext(path)[1][1:]


def _stem(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


_RESOLVERS: Dict[str, Callable[[FileTask], str]] = {
    "FNAME": lambda task: _stem(task.path),
    "FEXT": lambda task: _extension(task.path),
    "FPATH": lambda task: task.path,
    "DPATH": lambda task: os.path.dirname(task.path),
    "FPATH_REL": lambda task: task.path_rel,
    "DPATH_REL": lambda task: os.path.dirname(task.path_rel),
}

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def variable_names() -> List[str]:
    """Return the supported marker names, in declaration order."""
    return list(_RESOLVERS)


def contains_variables(text: str) -> bool:
    """
    Check whether a string carries at least one marker prefix.

    Used to decide if a configured value (e.g. the working directory) can be
    validated immediately or has to wait for a concrete file.

    Args:
        text: String to inspect.

    Returns:
        bool: True if '%DIRUN_' occurs in any letter case.
    """
    return bool(text) and _PREFIX_RX.search(text) is not None


def replace_variables(text: str, task: FileTask) -> str:
    """
    Substitute every recognized marker with the value for 'task'.

    Unrecognized names are left verbatim.

    Args:
        text: String possibly containing markers.
        task: File whose path information supplies the values.

    Returns:
        str: The expanded string.
    """
    if not text:
        return text

    def _sub(match: "re.Match[str]") -> str:
        resolver = _RESOLVERS.get(match.group(1).upper())
        if resolver is None:
            return match.group(0)
        return resolver(task)

    return _MARKER_RX.sub(_sub, text)
