from __future__ import annotations

"""
Integration tests for the dirun run pipeline.

Exercises scan, dispatch, execution and completion synchronization
together against a real directory tree, using the current interpreter as
the command.
"""

import os
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List

import pytest

from dirun.core.parsing.command_parser import parse_command
from dirun.core.pipeline.engine import DirunEngine, run_dirun
from dirun.domain.command_models import CommandChain
from dirun.domain.tree_models import FileTask, TraversalContext

FAIL_ON_LOG = "import sys; sys.exit(1 if sys.argv[1].endswith('.log') else 0)"


@pytest.fixture
def tree_config(mock_config_dict: Dict[str, Any], sample_tree: Path) -> Dict[str, Any]:
    mock_config_dict["root_path"] = str(sample_tree)
    return mock_config_dict


def _command(code: str, *extra: str) -> CommandChain:
    return parse_command([sys.executable, "-c", code, *extra])


def test_pass_and_fail_counts(tree_config: Dict[str, Any]) -> None:
    result = run_dirun(tree_config, _command(FAIL_ON_LOG, "%DIRUN_FPATH%"))

    assert result.ok
    assert result.num_files == 4
    assert result.num_passed == 3
    assert result.num_failed == 1
    assert result.summary["failed"] == 1
    assert not result.cancelled


def test_callback_once_per_file(tree_config: Dict[str, Any], sample_tree: Path) -> None:
    seen: List[str] = []
    lock = threading.Lock()

    def on_done(task: FileTask) -> None:
        with lock:
            seen.append(task.path)

    run_dirun(tree_config, _command("pass"), on_file_completed=on_done)

    expected = {
        str(sample_tree / "a.txt"),
        str(sample_tree / "b.log"),
        str(sample_tree / "sub" / "c.txt"),
        str(sample_tree / "sub" / "deep" / "d.txt"),
    }
    assert len(seen) == 4
    assert set(seen) == expected


def test_every_task_is_finished_when_run_returns(tree_config: Dict[str, Any]) -> None:
    tree_config["verbose"] = True
    result = run_dirun(tree_config, _command("import sys; print(sys.argv[1])", "%DIRUN_FNAME%"))

    tasks = list(result.root.iter_files())
    assert len(tasks) == 4
    assert all(t.completed for t in tasks)
    assert sorted(t.stdout for t in tasks) == ["a", "b", "c", "d"]


def test_pattern_and_norecurse(tree_config: Dict[str, Any]) -> None:
    tree_config["file_pattern"] = "*.txt"
    tree_config["recurse"] = False

    result = run_dirun(tree_config, _command("pass"))

    assert result.num_files == 1
    assert [t.name for t in result.root.iter_files()] == ["a.txt"]


def test_pass_code(tree_config: Dict[str, Any]) -> None:
    tree_config["pass_code"] = 5

    result = run_dirun(tree_config, _command("import sys; sys.exit(5)"))

    assert result.num_passed == 4
    assert result.num_failed == 0


def test_conditional_stop_counts_as_failure(tree_config: Dict[str, Any]) -> None:
    chain = parse_command([sys.executable, "-c", "pass", "&&", sys.executable, "-c", "pass"])

    result = run_dirun(tree_config, chain)

    assert result.num_passed == 0
    assert result.num_failed == 4


def test_working_directory_per_file(tree_config: Dict[str, Any], sample_tree: Path) -> None:
    tree_config["working_directory"] = "%DIRUN_DPATH%"
    tree_config["collect_stdout"] = True

    result = run_dirun(tree_config, _command("import os; print(os.path.basename(os.getcwd()))"))

    by_name = {t.name: t.stdout for t in result.root.iter_files()}
    assert by_name["a.txt"] == sample_tree.name
    assert by_name["c.txt"] == "sub"
    assert by_name["d.txt"] == "deep"


def test_redirect_output_per_file(tree_config: Dict[str, Any], tmp_path: Path) -> None:
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    tokens = [sys.executable, "-c", "import sys; print(sys.argv[1])", "%DIRUN_FNAME%",
              ">", str(out_dir / "%DIRUN_FNAME%.out")]

    result = run_dirun(tree_config, parse_command(tokens))

    assert result.num_passed == 4
    assert sorted(p.name for p in out_dir.iterdir()) == ["a.out", "b.out", "c.out", "d.out"]
    assert (out_dir / "c.out").read_text(encoding="utf-8").strip() == "c"


def test_listing_run_executes_nothing(tree_config: Dict[str, Any]) -> None:
    result = run_dirun(tree_config)

    assert result.ok
    assert result.num_files == 4
    assert result.num_passed == 0
    assert result.num_failed == 0
    assert not result.command


def test_empty_tree(tree_config: Dict[str, Any]) -> None:
    tree_config["file_pattern"] = "*.none"

    result = run_dirun(tree_config, _command("pass"))

    assert result.ok
    assert result.num_files == 0


def test_invalid_root(mock_config_dict: Dict[str, Any], tmp_path: Path) -> None:
    mock_config_dict["root_path"] = str(tmp_path / "missing")

    result = run_dirun(mock_config_dict, _command("pass"))

    assert not result.ok
    assert "invalid DIR argument" in result.error


def test_invalid_pattern(tree_config: Dict[str, Any]) -> None:
    tree_config["file_pattern"] = os.path.join("sub", "*.txt")

    result = run_dirun(tree_config, _command("pass"))

    assert not result.ok
    assert "invalid FILES argument" in result.error


def test_cancelled_before_start(tree_config: Dict[str, Any]) -> None:
    cancel = threading.Event()
    cancel.set()
    calls: List[FileTask] = []

    result = run_dirun(tree_config, _command("pass"), on_file_completed=calls.append, cancel_event=cancel)

    assert result.ok
    assert result.cancelled
    assert calls == []


def test_engine_without_command_only_scans(sample_tree: Path) -> None:
    root = DirunEngine().run(TraversalContext(str(sample_tree)))

    assert root.num_files == 4
    assert all(not t.completed for t in root.iter_files())
