from __future__ import annotations

"""
Unit tests for the CLI Result Reporter.

Output goes to in-memory rich consoles without color so lines can be
compared verbatim.
"""

import io
import os
import threading
from typing import Any, Dict

import pytest
from rich.console import Console

from dirun.core.parsing.command_parser import parse_command_line
from dirun.domain.command_models import CommandChain
from dirun.domain.pipeline_models import create_success_result
from dirun.domain.tree_models import DirectoryNode, FileTask
from dirun.interface.cli.report import ResultReporter, format_listing


def _console(buf: io.StringIO) -> Console:
    return Console(file=buf, color_system=None, force_terminal=False, width=200)


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


def _reporter(cfg: Dict[str, Any], chain: CommandChain, streams) -> ResultReporter:
    out, err = streams
    return ResultReporter(cfg, chain, _console(out), _console(err))


def _task(exit_code: int = 0, completed: bool = True) -> FileTask:
    path = os.path.join(os.sep + "data", "sub", "a.txt")
    return FileTask(
        path=path,
        path_rel=os.path.join("sub", "a.txt"),
        name="a.txt",
        stdout="hello",
        stderr="warn",
        exit_code=exit_code,
        completed=completed,
    )


def test_pass_line_shows_substituted_command(mock_config_dict, streams) -> None:
    chain = parse_command_line("check %DIRUN_FNAME%.%DIRUN_FEXT%")
    _reporter(mock_config_dict, chain, streams).report_file(_task())

    assert streams[0].getvalue() == 'PASS: check "a.txt"\n'


def test_fail_on_exit_code_mismatch(mock_config_dict, streams) -> None:
    _reporter(mock_config_dict, parse_command_line("check"), streams).report_file(_task(exit_code=1))
    assert streams[0].getvalue() == "FAIL: check\n"


def test_fail_when_not_completed(mock_config_dict, streams) -> None:
    _reporter(mock_config_dict, parse_command_line("check"), streams).report_file(_task(completed=False))
    assert streams[0].getvalue().startswith("FAIL:")


def test_custom_pass_code(mock_config_dict, streams) -> None:
    mock_config_dict["pass_code"] = 4
    _reporter(mock_config_dict, parse_command_line("check"), streams).report_file(_task(exit_code=4))
    assert streams[0].getvalue() == "PASS: check\n"


def test_repfile_reports_path(mock_config_dict, streams) -> None:
    mock_config_dict["report_file_name"] = True
    task = _task()
    _reporter(mock_config_dict, parse_command_line("check"), streams).report_file(task)

    assert streams[0].getvalue() == f"PASS: {task.path}\n"


def test_working_directory_wrapper(mock_config_dict, streams) -> None:
    mock_config_dict["working_directory"] = "%DIRUN_DPATH%"
    task = _task()
    reporter = _reporter(mock_config_dict, parse_command_line("check"), streams)

    assert reporter.render_file_command(task) == f'pushd "{os.path.dirname(task.path)}" && check & popd'


def test_verbose_block(mock_config_dict, streams) -> None:
    mock_config_dict["verbose"] = True
    _reporter(mock_config_dict, parse_command_line("check"), streams).report_file(_task(exit_code=2))

    assert streams[0].getvalue().splitlines() == ["check", "hello", "warn", "exit code = 2"]


def test_concurrent_reports_do_not_interleave(mock_config_dict, streams) -> None:
    mock_config_dict["verbose"] = True
    reporter = _reporter(mock_config_dict, parse_command_line("check"), streams)

    threads = [threading.Thread(target=reporter.report_file, args=(_task(),)) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    lines = streams[0].getvalue().splitlines()
    assert reporter.num_reported == 20
    assert lines == ["check", "hello", "warn", "exit code = 0"] * 20


def test_settings_block(mock_config_dict, streams) -> None:
    _reporter(mock_config_dict, CommandChain(), streams).print_settings()
    lines = streams[0].getvalue().splitlines()

    assert lines[0] == f"dir       = {mock_config_dict['root_path']}"
    assert "command   = <none specified>" in lines
    assert "recurse   = true" in lines


def _tree() -> DirectoryNode:
    root = DirectoryNode(name="/data", files=[FileTask("/data/a", "a", "a")])
    sub = DirectoryNode(name="sub", files=[FileTask("/data/sub/b", "sub/b", "b")])
    sub.add_files(1)
    empty = DirectoryNode(name="empty")
    root.dirs = [empty, sub]
    root.add_files(2)
    return root


def test_listing_skips_empty_subtrees() -> None:
    assert format_listing(_tree()) == ["/data/", "  a", "  sub/", "    b"]


def test_result_without_command_prints_listing(mock_config_dict, streams) -> None:
    result = create_success_result(mock_config_dict, _tree(), CommandChain(), 0, 0, 5)
    _reporter(mock_config_dict, CommandChain(), streams).print_result(result)

    assert streams[1].getvalue() == "warning: no executable provided, listing target files.\n"
    assert streams[0].getvalue().splitlines() == ["/data/", "  a", "  sub/", "    b"]


def test_result_without_files_warns(mock_config_dict, streams) -> None:
    result = create_success_result(mock_config_dict, DirectoryNode(name="/x"), parse_command_line("c"), 0, 0, 1)
    _reporter(mock_config_dict, parse_command_line("c"), streams).print_result(result)

    assert streams[1].getvalue() == "warning: no files found.\n"
    assert streams[0].getvalue() == ""


def test_summary(mock_config_dict, streams) -> None:
    chain = parse_command_line("c")
    result = create_success_result(mock_config_dict, _tree(), chain, 1, 1, 42)
    _reporter(mock_config_dict, chain, streams).print_result(result)

    assert streams[0].getvalue().splitlines() == [
        "duration  = 42 ms",
        "num files = 2",
        "passed    = 1",
        "failed    = 1",
    ]
