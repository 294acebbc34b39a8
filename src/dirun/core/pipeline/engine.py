from __future__ import annotations

"""
Core orchestration pipeline.

This module coordinates a complete dirun run:
1. Validates configuration and paths.
2. Starts the execution event loop.
3. Scans the directory tree, dispatching one chain execution per matched file.
4. Publishes the final file count to the completion synchronizer.
5. Waits for every dispatched execution and joins their futures.
6. Aggregates pass/fail metrics into a RunResult.
"""

import concurrent.futures
import logging
import os
import threading
import time
from typing import Any, Dict, List, Optional

from dirun.core.pipeline.executor import ExecutionCoordinator, ExecutionOptions, FileCompletedCallback
from dirun.core.pipeline.validator import validate_config
from dirun.core.services.scanner import DirectoryScanner
from dirun.core.services.sync import CompletionSynchronizer
from dirun.domain.command_models import CommandChain
from dirun.domain.errors import ConfigError
from dirun.domain.pipeline_models import RunResult, create_error_result, create_success_result
from dirun.domain.tree_models import DirectoryNode, FileTask, TraversalContext
from dirun.infra.fs import normalize_path
from dirun.infra.process import EventLoopThread

logger = logging.getLogger(__name__)


class DirunEngine:
    """
    Couples the directory scanner with the execution coordinator.

    Scanning threads hand each file to an asyncio loop running on its own
    thread and never wait for it. The engine returns only after the
    synchronizer observed every dispatched file finishing.

    Args:
        chain: Command to run per file. Empty for a pure listing run.
        options: Working directory and collection flags.
        on_file_completed: Called once per file after its chain stopped.
    """

    def __init__(
            self,
            chain: Optional[CommandChain] = None,
            options: Optional[ExecutionOptions] = None,
            on_file_completed: Optional[FileCompletedCallback] = None,
    ):
        self._chain = chain if chain is not None else CommandChain()
        self._options = options or ExecutionOptions()
        self._on_file_completed = on_file_completed

    def run(self, ctx: TraversalContext) -> DirectoryNode:
        """
        Traverse 'ctx' and, with a command, run it against every matched file.

        Returns:
            DirectoryNode: The root node with its final recursive file count.

        Raises:
            ConfigError: Invalid root directory or file filter.
        """
        if not self._chain:
            return DirectoryScanner().scan(ctx)

        synchronizer = CompletionSynchronizer()
        coordinator = ExecutionCoordinator(
            self._chain, self._options, self._on_file_completed, synchronizer
        )
        futures: List[concurrent.futures.Future] = []
        futures_lock = threading.Lock()

        with EventLoopThread() as loop:
            def dispatch(task: FileTask) -> None:
                future = loop.submit(coordinator.execute(task))
                with futures_lock:
                    futures.append(future)
                logger.debug(f"DISPATCH: {task.path}")

            try:
                root = DirectoryScanner(dispatch).scan(ctx)
            except Exception:
                # Let already dispatched work finish before the loop stops
                with futures_lock:
                    pending = list(futures)
                concurrent.futures.wait(pending)
                raise

            synchronizer.set_total(root.num_files)
            synchronizer.wait()

            with futures_lock:
                pending = list(futures)
            for future in pending:
                future.result()

        return root


# ==============================================================================
# PUBLIC API
# ==============================================================================

def run_dirun(
        config: Optional[Dict[str, Any]],
        command: Optional[CommandChain] = None,
        *,
        on_file_completed: Optional[FileCompletedCallback] = None,
        cancel_event: Optional[threading.Event] = None,
) -> RunResult:
    """
    Execute a full dirun run.

    Args:
        config: The configuration dictionary (raw or partial).
        command: Parsed command chain. None or empty lists the files only.
        on_file_completed: Per-file report hook.
        cancel_event: Cooperative cancellation of the directory scan.

    Returns:
        RunResult: Object containing status, the tree, and metrics.
    """
    logger.info("Run started.")
    chain = command if command is not None else CommandChain()

    # -------------------------------------------------------------------------
    # 1) Config & Path Normalization
    # -------------------------------------------------------------------------
    cfg, warnings = validate_config(config, strict=False)
    for warning in warnings:
        logger.warning(f"Configuration Warning: {warning}")

    root_path = normalize_path(cfg["root_path"], os.getcwd())
    ctx = TraversalContext(
        root_path=root_path,
        file_pattern=cfg["file_pattern"],
        recurse=cfg["recurse"],
        cancel_event=cancel_event,
    )
    options = ExecutionOptions(
        working_directory=cfg["working_directory"],
        collect_stdout=cfg["collect_stdout"],
        collect_stderr=cfg["collect_stderr"],
    )

    # -------------------------------------------------------------------------
    # 2) Traversal & Execution
    # -------------------------------------------------------------------------
    start = time.perf_counter()
    try:
        root = DirunEngine(chain, options, on_file_completed).run(ctx)
    except ConfigError as e:
        logger.error(str(e))
        return create_error_result(str(e), cfg, root_path, chain, _elapsed_ms(start))
    duration_ms = _elapsed_ms(start)

    # -------------------------------------------------------------------------
    # 3) Metrics
    # -------------------------------------------------------------------------
    num_passed = 0
    num_failed = 0
    if chain:
        pass_code = cfg["pass_code"]
        for task in root.iter_files():
            if is_passed(task, pass_code):
                num_passed += 1
            else:
                num_failed += 1

    cancelled = cancel_event is not None and cancel_event.is_set()
    summary = {
        "root_path": root.name,
        "command": str(chain),
        "num_files": root.num_files,
        "passed": num_passed,
        "failed": num_failed,
        "duration_ms": duration_ms,
        "cancelled": cancelled,
    }

    logger.info(
        f"Run completed: files={root.num_files} passed={num_passed} "
        f"failed={num_failed} duration={duration_ms}ms"
    )
    return create_success_result(
        cfg, root, chain, num_passed, num_failed, duration_ms, cancelled, summary
    )


def is_passed(task: FileTask, pass_code: int) -> bool:
    """A file passes when its chain completed with the expected exit code."""
    return task.completed and task.exit_code == pass_code


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
