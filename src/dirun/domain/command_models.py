from __future__ import annotations

"""
Command Chain Data Models.

Describes a parsed command line: an ordered chain of executable steps, the
operator joining each step to the next, and the per-handle redirection table
of every step. Construction and rendering live in
'dirun.core.parsing.command_parser'.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterator, List, Optional

# -----------------------------------------------------------------------------
# ENUMERATIONS
# -----------------------------------------------------------------------------

class Continuation(Enum):
    """Operator that joins a step to the next one in the chain."""
    TERMINATE = ""
    PIPE = "|"
    ALWAYS = "&"
    IF_PASS = "&&"
    IF_FAIL = "||"


class RedirectHandle(IntEnum):
    """
    Redirection slots.

    Values 0-9 are the numbered handles addressable from the command line
    ('2>' selects STDERR). NOT_SET and FILE are only valid as a target.
    """
    INPUT = 0
    STDOUT = 1
    STDERR = 2
    WARNING = 3
    VERBOSE = 4
    DEBUG = 5
    INFO = 6
    H7 = 7
    H8 = 8
    H9 = 9
    NOT_SET = 10
    FILE = 11


HANDLE_COUNT: int = 10

# Capture priority used by the execution coordinator
STDOUT_CAPTURE_ORDER = (
    RedirectHandle.STDOUT,
    RedirectHandle.VERBOSE,
    RedirectHandle.DEBUG,
    RedirectHandle.INFO,
    RedirectHandle.H7,
    RedirectHandle.H8,
    RedirectHandle.H9,
)
STDERR_CAPTURE_ORDER = (
    RedirectHandle.STDERR,
    RedirectHandle.WARNING,
)

# -----------------------------------------------------------------------------
# STRUCTURAL COMPONENTS
# -----------------------------------------------------------------------------

@dataclass
class Redirection:
    """
    Target of one redirected handle.

    Attributes:
        target_handle: FILE for a file target, a numbered handle for a
                       duplication ('2>&1'), NOT_SET when unused.
        target_path: File path for FILE targets. None together with FILE
                     means the stream is discarded ('NUL').
        append: Open the target file in append mode ('>>').
    """
    target_handle: RedirectHandle = RedirectHandle.NOT_SET
    target_path: Optional[str] = None
    append: bool = False

    @property
    def is_set(self) -> bool:
        return self.target_handle != RedirectHandle.NOT_SET

    @property
    def is_discard(self) -> bool:
        return self.target_handle == RedirectHandle.FILE and self.target_path is None

    @property
    def is_duplicate(self) -> bool:
        return self.is_set and self.target_handle != RedirectHandle.FILE


def _empty_redirections() -> List[Redirection]:
    return [Redirection() for _ in range(HANDLE_COUNT)]


@dataclass
class CommandStep:
    """
    One executable in a command chain.

    Attributes:
        path: Executable path, may contain %DIRUN_*% markers.
        args: Pre-quoted argument string, may contain %DIRUN_*% markers.
        continuation: Operator deciding whether the following step runs.
        redirections: Redirection table indexed by source handle.
    """
    path: str = ""
    args: str = ""
    continuation: Continuation = Continuation.TERMINATE
    redirections: List[Redirection] = field(default_factory=_empty_redirections)

    def redirection(self, handle: RedirectHandle) -> Redirection:
        return self.redirections[int(handle)]


@dataclass
class CommandChain:
    """Ordered steps of a parsed command. An empty chain means no command."""
    steps: List[CommandStep] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[CommandStep]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> CommandStep:
        return self.steps[index]

    def __str__(self) -> str:
        from dirun.core.parsing.command_parser import render_command
        return render_command(self)
