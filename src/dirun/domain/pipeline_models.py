from __future__ import annotations

"""
Run Domain Data Models.

Defines the result structure a traversal run hands back to the interface
layer, together with the factory functions that build it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dirun.domain.command_models import CommandChain
from dirun.domain.tree_models import DirectoryNode

# -----------------------------------------------------------------------------
# CORE DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class RunResult:
    """
    Outcome of one complete dirun run.

    Attributes:
        ok: False if the run aborted on a fatal error.
        error: Descriptive message in case of failure.
        root_path: Absolute directory that was traversed.
        file_pattern: Filter applied to file names.
        recurse: Whether subdirectories were traversed.
        command: The parsed command chain (empty for a listing run).
        root: The filled-in directory tree (None if the run aborted early).
        num_files: Recursive count of matched files.
        num_passed: Files whose chain completed with the pass code.
        num_failed: Files that did not pass.
        duration_ms: Wall-clock duration of the run.
        cancelled: Whether cancellation was requested during the run.
        summary: Extra execution metrics.
    """
    ok: bool
    error: str

    root_path: str
    file_pattern: str
    recurse: bool

    command: CommandChain = field(default_factory=CommandChain)
    root: Optional[DirectoryNode] = None

    num_files: int = 0
    num_passed: int = 0
    num_failed: int = 0
    duration_ms: int = 0
    cancelled: bool = False

    summary: Dict[str, Any] = field(default_factory=dict)

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_error_result(
        error: str,
        cfg: Dict[str, Any],
        root_path: str,
        command: Optional[CommandChain] = None,
        duration_ms: int = 0
) -> RunResult:
    """
    Create a failed run result.

    Args:
        error: Detailed error description.
        cfg: The configuration used during the failed run.
        root_path: The target directory.
        command: The parsed command, if parsing got that far.
        duration_ms: Time spent before the failure.

    Returns:
        RunResult: An immutable error result object.
    """
    return RunResult(
        ok=False,
        error=error,
        root_path=root_path,
        file_pattern=cfg.get("file_pattern", "*.*"),
        recurse=bool(cfg.get("recurse", True)),
        command=command if command is not None else CommandChain(),
        duration_ms=duration_ms,
    )


def create_success_result(
        cfg: Dict[str, Any],
        root: DirectoryNode,
        command: CommandChain,
        num_passed: int,
        num_failed: int,
        duration_ms: int,
        cancelled: bool = False,
        summary_extra: Optional[Dict[str, Any]] = None
) -> RunResult:
    """
    Create a completed run result.

    Args:
        cfg: Final configuration used during execution.
        root: The traversed tree, named with the absolute root path.
        command: The executed chain.
        num_passed: Count of passing files.
        num_failed: Count of failing files.
        duration_ms: Wall-clock duration.
        cancelled: Whether cancellation was requested.
        summary_extra: Final execution metrics.

    Returns:
        RunResult: An immutable success result object.
    """
    return RunResult(
        ok=True,
        error="",
        root_path=root.name,
        file_pattern=cfg.get("file_pattern", "*.*"),
        recurse=bool(cfg.get("recurse", True)),
        command=command,
        root=root,
        num_files=root.num_files,
        num_passed=num_passed,
        num_failed=num_failed,
        duration_ms=duration_ms,
        cancelled=cancelled,
        summary=summary_extra or {},
    )
