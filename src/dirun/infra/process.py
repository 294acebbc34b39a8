from __future__ import annotations

"""
Process Launch Infrastructure.

Starts external processes on an asyncio event loop and delivers their
standard output and error streams line by line to capture sinks while they
run. Waiting for exit suspends the calling coroutine only, so one loop
multiplexes any number of in-flight processes.
"""

import asyncio
import concurrent.futures
import io
import logging
import threading
from typing import IO, Any, Optional, Sequence, Union

from dirun.domain.errors import LaunchError

logger = logging.getLogger(__name__)

# Per-line limit of the stream readers
_STREAM_LIMIT: int = 16 * 1024 * 1024

# -----------------------------------------------------------------------------
# CAPTURE SINKS
# -----------------------------------------------------------------------------

class BufferSink:
    """Collects lines in memory."""

    def __init__(self) -> None:
        self._buffer = io.StringIO()

    def write_line(self, line: str) -> None:
        self._buffer.write(line)
        self._buffer.write("\n")

    def getvalue(self) -> str:
        return self._buffer.getvalue()

    def close(self) -> None:
        pass


class FileSink:
    """Writes lines to a file opened for the duration of one step."""

    def __init__(self, path: str, append: bool = False):
        self.path = path
        self._fh: IO[str] = open(path, "a" if append else "w", encoding="utf-8")

    def write_line(self, line: str) -> None:
        self._fh.write(line)
        self._fh.write("\n")

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()


class DiscardSink:
    """The stream is sent to the null device."""

    def write_line(self, line: str) -> None:
        pass

    def close(self) -> None:
        pass


Sink = Union[BufferSink, FileSink, DiscardSink]

# ==============================================================================
# PUBLIC API
# ==============================================================================

async def spawn(
        path: str,
        argv: Sequence[str],
        working_dir: Optional[str] = None,
        stdout_sink: Optional[Sink] = None,
        stderr_sink: Optional[Sink] = None,
        stdin: Optional[IO[bytes]] = None,
) -> int:
    """
    Run an external process to completion.

    A sink of None leaves the stream attached to the parent's console.

    Args:
        path: Executable path or name (resolved through PATH).
        argv: Arguments, without the executable.
        working_dir: Directory to start the process in.
        stdout_sink: Destination of standard output.
        stderr_sink: Destination of standard error.
        stdin: Open binary file used as standard input (default: null device).

    Returns:
        int: The process exit code.

    Raises:
        LaunchError: The process could not be started.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            path,
            *argv,
            cwd=working_dir or None,
            stdin=stdin if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=_stream_spec(stdout_sink),
            stderr=_stream_spec(stderr_sink),
            limit=_STREAM_LIMIT,
        )
    except (OSError, ValueError) as e:
        raise LaunchError(str(e)) from e

    logger.debug(f"EXEC: START pid={proc.pid}: {path} {' '.join(argv)}")

    pumps = []
    if proc.stdout is not None and stdout_sink is not None:
        pumps.append(_pump_lines(proc.stdout, stdout_sink))
    if proc.stderr is not None and stderr_sink is not None:
        pumps.append(_pump_lines(proc.stderr, stderr_sink))
    if pumps:
        await asyncio.gather(*pumps)

    exit_code = await proc.wait()
    logger.debug(f"EXEC: DONE pid={proc.pid} exit={exit_code}: {path}")
    return exit_code


class EventLoopThread:
    """
    Runs an asyncio event loop on a dedicated daemon thread.

    Worker threads hand coroutines to the loop with submit() and receive a
    concurrent.futures.Future they can track and join.
    """

    def __init__(self, name: str = "ExecutionLoop"):
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    def start(self) -> "EventLoopThread":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        self._ready.wait()
        return self

    def submit(self, coro: Any) -> "concurrent.futures.Future[Any]":
        if self._loop is None:
            raise RuntimeError("event loop thread is not running")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def stop(self) -> None:
        if self._loop is None or self._thread is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()
        self._loop = None
        self._thread = None

    def __enter__(self) -> "EventLoopThread":
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _stream_spec(sink: Optional[Sink]) -> Optional[int]:
    if sink is None:
        return None
    if isinstance(sink, DiscardSink):
        return asyncio.subprocess.DEVNULL
    return asyncio.subprocess.PIPE


def _decode_line(raw: bytes) -> str:
    line = raw.decode("utf-8", errors="replace")
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


async def _pump_lines(stream: asyncio.StreamReader, sink: Sink) -> None:
    while True:
        try:
            raw = await stream.readline()
        except ValueError as e:
            logger.warning(f"EXEC: output line exceeds {_STREAM_LIMIT} bytes and was dropped: {e}")
            continue
        if not raw:
            break
        sink.write_line(_decode_line(raw))
