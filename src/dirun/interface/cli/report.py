from __future__ import annotations

"""
CLI Result Reporter.

Renders per-file outcomes, the directory listing of command-less runs and
the closing summary. Completion callbacks arrive concurrently from the
execution loop, so each file's report is written under one lock and never
interleaves with another's.
"""

import threading
from typing import Any, Dict, List, Optional

from rich.console import Console

from dirun.core.pipeline.engine import is_passed
from dirun.core.processing.variables import replace_variables
from dirun.domain.command_models import CommandChain
from dirun.domain.pipeline_models import RunResult
from dirun.domain.tree_models import DirectoryNode, FileTask
from dirun.utils.i18n import i18n

# -----------------------------------------------------------------------------
# STYLES
# -----------------------------------------------------------------------------

STYLE_PASS = "green"
STYLE_FAIL = "red"
STYLE_INFO = "bright_black"
STYLE_WARNING = "yellow"
STYLE_ERROR = "red"
STYLE_DIR = "blue"


class ResultReporter:
    """
    Console view of a dirun run.

    Args:
        config: The validated run configuration.
        chain: The parsed command (empty for a listing run).
        console: Destination of reports (default: stdout).
        err_console: Destination of warnings and errors (default: stderr).
    """

    def __init__(
            self,
            config: Dict[str, Any],
            chain: CommandChain,
            console: Optional[Console] = None,
            err_console: Optional[Console] = None,
    ):
        self._cfg = config
        self._chain = chain
        self._command_text = str(chain)
        self._out = console or Console(highlight=False)
        self._err = err_console or Console(stderr=True, highlight=False)
        self._lock = threading.Lock()
        self.num_reported = 0

    # ==========================================================================
    # PER-FILE REPORTING
    # ==========================================================================

    def report_file(self, task: FileTask) -> None:
        """Print the outcome of one file. Safe to call from any thread."""
        passed = is_passed(task, self._cfg["pass_code"])
        status = i18n.t("cli.report.pass") if passed else i18n.t("cli.report.fail")
        style = STYLE_PASS if passed else STYLE_FAIL

        verbose = self._cfg["verbose"]
        report_file_name = self._cfg["report_file_name"]
        cmd = self.render_file_command(task) if verbose or not report_file_name else ""

        with self._lock:
            if verbose:
                self._line(cmd, style)
                if task.stdout:
                    self._line(task.stdout, None)
                if task.stderr:
                    self._line(task.stderr, STYLE_WARNING)
                self._line(i18n.t("cli.report.exit_code", code=task.exit_code), STYLE_INFO)
            elif report_file_name:
                self._line(f"{status}: {task.path}", style)
            else:
                self._line(f"{status}: {cmd}", style)
            self.num_reported += 1

    def render_file_command(self, task: FileTask) -> str:
        """
        Render the command as it ran for 'task'.

        A configured working directory is shown as a pushd/popd wrapper.
        """
        text = replace_variables(self._command_text, task)
        working = self._cfg["working_directory"]
        if working:
            working = replace_variables(working, task)
            text = f'pushd "{working}" && {text} & popd'
        return text

    # ==========================================================================
    # RUN LEVEL REPORTING
    # ==========================================================================

    def print_settings(self) -> None:
        """Print the effective settings (verbose mode)."""
        cfg = self._cfg
        command = self._command_text if self._chain else i18n.t("cli.settings.no_command")
        rows = [
            ("dir", cfg["root_path"]),
            ("files", cfg["file_pattern"]),
            ("recurse", str(cfg["recurse"]).lower()),
            ("working", cfg["working_directory"]),
            ("command", command),
            ("pass", str(cfg["pass_code"])),
            ("repfile", str(cfg["report_file_name"]).lower()),
            ("verbose", str(cfg["verbose"]).lower()),
        ]
        for key, value in rows:
            self._line(f"{key:<9} = {value}", STYLE_INFO)

    def print_result(self, result: RunResult) -> None:
        """Print the closing section of a finished run."""
        if result.root is None or result.num_files == 0:
            self.warn(i18n.t("cli.warnings.no_files"))
            return

        if not result.command:
            self.warn(i18n.t("cli.warnings.listing"))
            for line in format_listing(result.root):
                style = STYLE_DIR if line.endswith("/") else None
                self._line(line, style)
            return

        self._line(i18n.t("cli.summary.duration", ms=result.duration_ms), STYLE_INFO)
        self._line(i18n.t("cli.summary.num_files", count=result.num_files), STYLE_INFO)
        self._line(i18n.t("cli.summary.passed", count=result.num_passed), STYLE_INFO)
        self._line(i18n.t("cli.summary.failed", count=result.num_failed), STYLE_INFO)

    def warn(self, message: str) -> None:
        self._err.print(message, style=STYLE_WARNING, markup=False, highlight=False, soft_wrap=True)

    def error(self, message: str) -> None:
        self._err.print(message, style=STYLE_ERROR, markup=False, highlight=False, soft_wrap=True)

    def _line(self, text: str, style: Optional[str]) -> None:
        self._out.print(text, style=style, markup=False, highlight=False, soft_wrap=True)


# ==============================================================================
# LISTING
# ==============================================================================

def format_listing(root: DirectoryNode) -> List[str]:
    """
    Render a scanned tree as indented lines.

    Directories end with '/'. Subdirectories without any matched file in
    their subtree are skipped.
    """
    lines: List[str] = []
    _format_node(root, 0, lines)
    return lines


def _format_node(node: DirectoryNode, level: int, lines: List[str]) -> None:
    indent = "  " * level
    lines.append(f"{indent}{node.name}/")
    child_indent = "  " * (level + 1)
    for task in node.files:
        lines.append(f"{child_indent}{task.name}")
    for sub in node.dirs:
        if sub.num_files > 0:
            _format_node(sub, level + 1, lines)
