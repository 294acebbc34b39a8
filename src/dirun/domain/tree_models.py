from __future__ import annotations

"""
Directory Tree and File Task Data Models.

Provides the per-file execution record and the recursive directory node
produced by the traversal engine. Directory counts are aggregated from
concurrently finishing subtree scans, so every mutation of a node's count
goes through its own lock.
"""

import threading
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

# -----------------------------------------------------------------------------
# FILE LEVEL
# -----------------------------------------------------------------------------

@dataclass
class FileTask:
    """
    A matched file and the outcome of running the command chain against it.

    Only the execution coordinator mutates a task, and only until
    'completed' is set.

    Attributes:
        path: Absolute filesystem path.
        path_rel: Path relative to the search root.
        name: Bare file name.
        stdout: Captured standard output (normalized).
        stderr: Captured standard error (normalized) or the failure message.
        exit_code: Exit code of the last step run, -1 on a per-file error.
        completed: True once the chain stopped without a per-file error.
    """
    path: str
    path_rel: str
    name: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    completed: bool = False


# -----------------------------------------------------------------------------
# DIRECTORY LEVEL
# -----------------------------------------------------------------------------

@dataclass
class DirectoryNode:
    """
    A scanned directory.

    Attributes:
        name: Full path for the root node, base name for every other node.
        files: Direct child file tasks.
        dirs: Direct child directory nodes.
        num_files: Recursive file count. Only final once the subtree scan
                   rooted at this node has returned.
    """
    name: str = ""
    files: List[FileTask] = field(default_factory=list)
    dirs: List["DirectoryNode"] = field(default_factory=list)
    num_files: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_files(self, count: int) -> int:
        """Atomically add to the recursive file count and return the new value."""
        with self._lock:
            self.num_files += count
            return self.num_files

    def iter_files(self) -> Iterator[FileTask]:
        """Yield every file task of the subtree, depth first."""
        yield from self.files
        for sub in self.dirs:
            yield from sub.iter_files()


# -----------------------------------------------------------------------------
# TRAVERSAL INPUT
# -----------------------------------------------------------------------------

@dataclass
class TraversalContext:
    """
    Parameters of one traversal.

    Attributes:
        root_path: Directory the search starts from.
        file_pattern: File-name filter (glob).
        recurse: Descend into subdirectories.
        cancel_event: Checked at the start of every directory visit.
    """
    root_path: str
    file_pattern: str = "*.*"
    recurse: bool = True
    cancel_event: Optional[threading.Event] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def cancel(self) -> None:
        """Stop every directory visit that has not started yet."""
        if self.cancel_event is None:
            self.cancel_event = threading.Event()
        self.cancel_event.set()
