from __future__ import annotations

"""
Completion Synchronization Primitives.

A traversal knows its total file count only once enumeration has fully
returned, while per-file executions may finish before or after that point.
The CompletionSynchronizer releases its single waiter when both facts hold,
whichever of them becomes true last.
"""

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class CompletionSynchronizer:
    """
    One-shot gate released once enumeration finished and every file completed.

    Both producers, set_total() from the enumeration path and
    mark_completed() from the execution path, run the same check-and-signal
    under one lock, so the release happens exactly once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._released = threading.Event()
        self._total: Optional[int] = None
        self._completed = 0
        self._fired = False

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def set_total(self, total: int) -> bool:
        """
        Record that enumeration finished with 'total' dispatched files.

        Args:
            total: Number of files dispatched for execution.

        Returns:
            bool: True if this call performed the release.
        """
        with self._lock:
            if self._total is not None:
                raise RuntimeError("total file count was already set")
            self._total = total
            return self._try_release()

    def mark_completed(self) -> bool:
        """
        Count one finished file.

        Returns:
            bool: True if this call performed the release.
        """
        with self._lock:
            self._completed += 1
            return self._try_release()

    # ------------------------------------------------------------------
    # Consumer
    # ------------------------------------------------------------------

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until released. Returns False if 'timeout' expired first."""
        return self._released.wait(timeout)

    @property
    def released(self) -> bool:
        return self._released.is_set()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def total(self) -> Optional[int]:
        with self._lock:
            return self._total

    def _try_release(self) -> bool:
        # Caller holds self._lock
        if self._fired or self._total is None or self._completed != self._total:
            return False
        self._fired = True
        self._released.set()
        logger.debug(f"SYNC: released after {self._completed} of {self._total} files")
        return True
