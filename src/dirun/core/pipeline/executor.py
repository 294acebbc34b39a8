from __future__ import annotations

"""
Per-File Command Chain Executor.

Runs every step of a CommandChain against one FileTask: resolves the capture
sinks of each step from its redirection table, substitutes the per-file
variables, launches the process, and decides from the step's continuation
operator whether the next step runs. Failures that only concern this file
end the chain with exit code -1 and are never raised to the caller.
"""

import logging
import os
from dataclasses import dataclass
from typing import IO, Callable, List, Optional, Sequence

from dirun.core.parsing.command_parser import split_command_line
from dirun.core.processing.variables import replace_variables
from dirun.core.services.sync import CompletionSynchronizer
from dirun.domain.command_models import (
    STDERR_CAPTURE_ORDER,
    STDOUT_CAPTURE_ORDER,
    CommandChain,
    CommandStep,
    Continuation,
    RedirectHandle,
)
from dirun.domain.errors import ExecutionError, RedirectionError, UnsupportedFeatureError
from dirun.domain.tree_models import FileTask
from dirun.infra.process import BufferSink, DiscardSink, FileSink, Sink, spawn

logger = logging.getLogger(__name__)

FileCompletedCallback = Callable[[FileTask], None]

PIPE_NOT_IMPLEMENTED = "command pipe (|) is not yet implemented."


@dataclass(frozen=True)
class ExecutionOptions:
    """
    Settings shared by every file execution of a run.

    Attributes:
        working_directory: Directory the processes start in, may contain
                           %DIRUN_*% markers. Empty for the current directory.
        collect_stdout: Capture un-redirected standard output in memory.
        collect_stderr: Capture un-redirected standard error in memory.
    """
    working_directory: str = ""
    collect_stdout: bool = False
    collect_stderr: bool = False


class ExecutionCoordinator:
    """
    Executes one command chain per file task.

    Args:
        chain: The parsed command chain (must not be empty).
        options: Working directory and collection flags.
        on_file_completed: Invoked once per file after its chain stopped.
        synchronizer: Notified of each finished file after the callback.
    """

    def __init__(
            self,
            chain: CommandChain,
            options: Optional[ExecutionOptions] = None,
            on_file_completed: Optional[FileCompletedCallback] = None,
            synchronizer: Optional[CompletionSynchronizer] = None,
    ):
        self._chain = chain
        self._options = options or ExecutionOptions()
        self._on_file_completed = on_file_completed
        self._synchronizer = synchronizer

    # ==========================================================================
    # PUBLIC API
    # ==========================================================================

    async def execute(self, task: FileTask) -> FileTask:
        """
        Run the chain against 'task', then report its completion.

        Args:
            task: The file to run against. Updated in place.

        Returns:
            FileTask: The same task, with outputs and exit code recorded.
        """
        logger.debug(f"EXEC: enter {task.path}")
        try:
            await self._run_chain(task)
        finally:
            self._report(task)
        logger.debug(f"EXEC: leave {task.path} exit={task.exit_code} completed={task.completed}")
        return task

    # ==========================================================================
    # CHAIN CONTROL
    # ==========================================================================

    async def _run_chain(self, task: FileTask) -> None:
        steps: Sequence[CommandStep] = self._chain.steps
        task.completed = False
        for index, step in enumerate(steps):
            try:
                await self._run_step(step, task)
                proceed = _should_continue(step.continuation, task.exit_code)
            except ExecutionError as e:
                task.exit_code = -1
                task.stderr = f"error: {e}"
                logger.error(f"{task.path_rel}: {e}")
                return

            is_last = index == len(steps) - 1
            if step.continuation == Continuation.TERMINATE or (
                    step.continuation == Continuation.ALWAYS and is_last):
                task.completed = True
                return
            # '&&' and '||' stop without completing, also when no step follows
            if not proceed or is_last:
                return

    async def _run_step(self, step: CommandStep, task: FileTask) -> None:
        working_dir = self._resolve_working_dir(task)

        stdout_handle = _choose_handle(step, STDOUT_CAPTURE_ORDER)
        stderr_handle = _choose_handle(step, STDERR_CAPTURE_ORDER)

        opened: List[Sink] = []
        stdin: Optional[IO[bytes]] = None
        try:
            stdout_sink = self._open_sink(step, stdout_handle, task, working_dir, self._options.collect_stdout)
            if stdout_sink is not None:
                opened.append(stdout_sink)
            stderr_sink = self._open_sink(step, stderr_handle, task, working_dir, self._options.collect_stderr)
            if stderr_sink is not None:
                opened.append(stderr_sink)
            stdin = self._open_input(step, task, working_dir)
        except OSError as e:
            _close_all(opened, stdin)
            raise RedirectionError(_os_error_message(e)) from e

        path = replace_variables(step.path, task)
        argv = split_command_line(replace_variables(step.args, task))

        try:
            exit_code = await spawn(path, argv, working_dir, stdout_sink, stderr_sink, stdin)
        finally:
            _close_all(opened, stdin)

        task.stdout = _collected_text(stdout_sink)
        task.stderr = _collected_text(stderr_sink)
        task.exit_code = exit_code

    # ==========================================================================
    # STREAM SETUP
    # ==========================================================================

    def _resolve_working_dir(self, task: FileTask) -> Optional[str]:
        if not self._options.working_directory:
            return None
        return replace_variables(self._options.working_directory, task)

    def _resolve_target(self, target: str, task: FileTask, working_dir: Optional[str]) -> str:
        path = replace_variables(target, task)
        if working_dir:
            path = os.path.join(working_dir, path)
        return path

    def _open_sink(
            self,
            step: CommandStep,
            handle: RedirectHandle,
            task: FileTask,
            working_dir: Optional[str],
            collect: bool
    ) -> Optional[Sink]:
        """
        Build the capture sink of one output stream.

        Returns None when the stream stays attached to the console.

        Raises:
            OSError: A redirection target file could not be opened.
        """
        if handle == RedirectHandle.NOT_SET:
            return BufferSink() if collect else None

        redirect = step.redirection(handle)
        if redirect.target_handle == RedirectHandle.FILE:
            if redirect.target_path is None:
                return DiscardSink()
            return FileSink(self._resolve_target(redirect.target_path, task, working_dir), redirect.append)

        # Duplicated handle ('2>&1'): always captured
        return BufferSink()

    def _open_input(self, step: CommandStep, task: FileTask, working_dir: Optional[str]) -> Optional[IO[bytes]]:
        redirect = step.redirection(RedirectHandle.INPUT)
        if redirect.target_handle != RedirectHandle.FILE or redirect.target_path is None:
            return None
        return open(self._resolve_target(redirect.target_path, task, working_dir), "rb")

    # ==========================================================================
    # COMPLETION
    # ==========================================================================

    def _report(self, task: FileTask) -> None:
        try:
            if self._on_file_completed is not None:
                self._on_file_completed(task)
        except Exception:
            logger.exception(f"Completion callback failed for {task.path}")
        finally:
            if self._synchronizer is not None:
                self._synchronizer.mark_completed()


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _choose_handle(step: CommandStep, candidates: Sequence[RedirectHandle]) -> RedirectHandle:
    """Return the first candidate handle that the step redirects."""
    for handle in candidates:
        if step.redirection(handle).is_set:
            return handle
    return RedirectHandle.NOT_SET


def _should_continue(continuation: Continuation, exit_code: int) -> bool:
    """
    Decide whether the step following a finished step runs.

    Raises:
        UnsupportedFeatureError: The pipe operator was reached.
    """
    if continuation == Continuation.TERMINATE:
        return False
    if continuation == Continuation.PIPE:
        raise UnsupportedFeatureError(PIPE_NOT_IMPLEMENTED)
    if continuation == Continuation.ALWAYS:
        return True
    if continuation == Continuation.IF_PASS:
        return exit_code != 0
    return exit_code == 0


def normalize_output(text: str) -> str:
    """Unify line endings and drop trailing blank lines."""
    return text.replace("\r\n", "\n").rstrip("\n")


def _collected_text(sink: Optional[Sink]) -> str:
    if isinstance(sink, BufferSink):
        return normalize_output(sink.getvalue())
    return ""


def _close_all(sinks: List[Sink], stdin: Optional[IO[bytes]]) -> None:
    for sink in sinks:
        sink.close()
    if stdin is not None:
        stdin.close()


def _os_error_message(e: OSError) -> str:
    if e.filename:
        return f"{e.strerror or e}: '{e.filename}'"
    return str(e)
