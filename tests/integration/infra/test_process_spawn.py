from __future__ import annotations

"""
Integration tests for Process Launch Infrastructure.

Runs the current interpreter as the child process so the tests are
portable across platforms.
"""

import asyncio
import sys
from pathlib import Path

import pytest

from dirun.domain.errors import LaunchError
from dirun.infra.process import BufferSink, DiscardSink, EventLoopThread, FileSink, spawn


def _run(coro):
    return asyncio.run(coro)


def test_exit_code_is_returned() -> None:
    code = _run(spawn(sys.executable, ["-c", "import sys; sys.exit(7)"]))
    assert code == 7


def test_streams_captured_line_by_line() -> None:
    out, err = BufferSink(), BufferSink()
    script = "import sys; print('one'); print('two'); sys.stderr.write('bad' + chr(10))"

    code = _run(spawn(sys.executable, ["-c", script], stdout_sink=out, stderr_sink=err))

    assert code == 0
    assert out.getvalue() == "one\ntwo\n"
    assert err.getvalue() == "bad\n"


def test_discard_sink() -> None:
    sink = DiscardSink()
    assert _run(spawn(sys.executable, ["-c", "print('gone')"], stdout_sink=sink)) == 0


def test_file_sink_and_append(tmp_path: Path) -> None:
    target = tmp_path / "out.txt"

    sink = FileSink(str(target))
    _run(spawn(sys.executable, ["-c", "print('first')"], stdout_sink=sink))
    sink.close()

    sink = FileSink(str(target), append=True)
    _run(spawn(sys.executable, ["-c", "print('second')"], stdout_sink=sink))
    sink.close()

    assert target.read_text(encoding="utf-8").splitlines() == ["first", "second"]


def test_working_dir_and_stdin(tmp_path: Path) -> None:
    source = tmp_path / "in.txt"
    source.write_bytes(b"fed\n")
    out = BufferSink()
    script = "import os, sys; print(os.path.basename(os.getcwd())); print(sys.stdin.read().strip())"

    with open(source, "rb") as fh:
        _run(spawn(sys.executable, ["-c", script], working_dir=str(tmp_path), stdout_sink=out, stdin=fh))

    assert out.getvalue().splitlines() == [tmp_path.name, "fed"]


def test_default_stdin_is_empty() -> None:
    out = BufferSink()
    _run(spawn(sys.executable, ["-c", "import sys; print(len(sys.stdin.read()))"], stdout_sink=out))
    assert out.getvalue() == "0\n"


def test_missing_executable_raises(tmp_path: Path) -> None:
    with pytest.raises(LaunchError):
        _run(spawn(str(tmp_path / "no-such-program"), []))


def test_event_loop_thread_runs_concurrently() -> None:
    script = "import time; time.sleep(0.2)"

    with EventLoopThread() as loop:
        futures = [loop.submit(spawn(sys.executable, ["-c", script])) for _ in range(4)]
        codes = [f.result(timeout=30) for f in futures]

    assert codes == [0, 0, 0, 0]


def test_submit_requires_start() -> None:
    loop = EventLoopThread()
    coro = asyncio.sleep(0)
    try:
        with pytest.raises(RuntimeError):
            loop.submit(coro)
    finally:
        coro.close()


def test_stop_is_idempotent() -> None:
    loop = EventLoopThread().start()
    loop.stop()
    loop.stop()
