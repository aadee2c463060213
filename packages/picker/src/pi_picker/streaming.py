"""
Streaming and background producers.

Provides:
- LineBuffer: turns arbitrary chunks into complete lines, carrying partial
  lines over to the next chunk
- GrowthBuffer: append-only candidate array that doubles its capacity
- BackgroundHandle: a cancellable in-flight computation (task + process)
- make_linewise_generator: generator backed by an external line-producing
  process, delivering after every complete line
- make_executor_generator: generator running a plain function in a worker
  pool, delivering its result when it completes
"""
from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import subprocess
import sys
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .session import Session
    from .source import Source

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CAPACITY = 1000
_READ_CHUNK = 4096


# ─────────────────────────────────────────────────────────────────────────────
# LineBuffer
# ─────────────────────────────────────────────────────────────────────────────

class LineBuffer:
    """
    Buffers chunked input and emits complete lines via callbacks.
    The trailing partial line is kept until the next chunk or flush().
    """

    def __init__(self, on_line: Callable[[str], None] | None = None) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._on_line: list[Callable[[str], None]] = []
        if on_line:
            self._on_line.append(on_line)

    def on(self, event: str, callback: Callable[[str], None]) -> None:
        """Register a callback for 'line' events."""
        if event == "line":
            self._on_line.append(callback)

    def _emit(self, line: str) -> None:
        if line.endswith("\r"):
            line = line[:-1]
        for cb in self._on_line:
            cb(line)

    def feed(self, data: str | bytes) -> None:
        """Feed a chunk. Multi-byte characters may be split across chunks."""
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        if not data:
            return
        self._buffer += data
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._emit(line)

    def flush(self) -> None:
        """Emit the pending partial line at end of stream."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer:
            pending, self._buffer = self._buffer, ""
            self._emit(pending)

    def get_buffer(self) -> str:
        return self._buffer


# ─────────────────────────────────────────────────────────────────────────────
# GrowthBuffer
# ─────────────────────────────────────────────────────────────────────────────

class GrowthBuffer:
    """
    Pre-allocated candidate array that doubles when full. Unused trailing
    slots stay None, so make_indices only sees what has been appended.
    """

    def __init__(self, initial_capacity: int = DEFAULT_INITIAL_CAPACITY) -> None:
        if initial_capacity < 1:
            raise ValueError("initial_capacity must be positive")
        self._array: list[Any] = [None] * initial_capacity
        self._cursor = 0

    def append(self, item: Any) -> None:
        if item is None:
            raise ValueError("None marks an empty slot and cannot be appended")
        if self._cursor >= len(self._array):
            grown: list[Any] = [None] * (len(self._array) * 2)
            grown[: self._cursor] = self._array
            self._array = grown
        self._array[self._cursor] = item
        self._cursor += 1

    @property
    def array(self) -> list[Any]:
        return self._array

    @property
    def capacity(self) -> int:
        return len(self._array)

    def __len__(self) -> int:
        return self._cursor


# ─────────────────────────────────────────────────────────────────────────────
# BackgroundHandle
# ─────────────────────────────────────────────────────────────────────────────

def _kill_process_tree(pid: int) -> None:
    """Kill a process and its entire child tree."""
    if sys.platform == "win32":
        subprocess.run(["taskkill", "/F", "/T", "/PID", str(pid)], capture_output=True)
        return
    try:
        os.killpg(os.getpgid(pid), signal.SIGTERM)
    except ProcessLookupError:
        pass
    except PermissionError:
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            pass


class BackgroundHandle:
    """
    An in-flight background computation for one source.
    cancel() terminates it exactly once; later calls are no-ops.
    """

    def __init__(
        self,
        task: asyncio.Future,
        process: asyncio.subprocess.Process | None = None,
        label: str = "",
    ) -> None:
        self.task = task
        self.process = process
        self.label = label
        self._cancelled = False
        self._process_killed = False

    @property
    def done(self) -> bool:
        return self.task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def terminate_process(self) -> None:
        if self._process_killed or self.process is None:
            return
        self._process_killed = True
        if self.process.returncode is None:
            _kill_process_tree(self.process.pid)

    def cancel(self) -> bool:
        """Terminate the computation. Returns False if already cancelled."""
        if self._cancelled:
            return False
        self._cancelled = True
        logger.debug("Cancelling background producer %s", self.label)
        self.terminate_process()
        if not self.task.done():
            self.task.cancel()
        return True


# ─────────────────────────────────────────────────────────────────────────────
# Generators
# ─────────────────────────────────────────────────────────────────────────────

def make_linewise_generator(
    command_fn: Callable[["Source", "Session"], list[str] | None],
    transform: Callable[[str], Any] | None = None,
    initial_capacity: int | None = None,
    cwd: str | None = None,
) -> Callable[["Source", "Session"], BackgroundHandle | None]:
    """
    Generator backed by an external process.

    command_fn returns the argv to spawn for the current query (or None to
    skip this cycle). Each complete stdout line is passed through transform
    (None results are skipped), appended to a fresh GrowthBuffer, and the
    session is asked to recompute the source over the grown array.
    """

    def _generator(source: "Source", session: "Session") -> BackgroundHandle | None:
        argv = command_fn(source, session)
        if not argv:
            return None

        generation = source.begin_background()
        capacity = initial_capacity or session.settings.initial_buffer_size
        buffer = GrowthBuffer(capacity)
        line_buffer = LineBuffer()

        def _on_line(line: str) -> None:
            item = transform(line) if transform else line
            if item is None:
                return
            buffer.append(item)
            # the buffer array itself is delivered; appends only fill empty slots
            session.deliver(source, buffer.array, generation)

        line_buffer.on("line", _on_line)
        handle: BackgroundHandle

        async def _run() -> int | None:
            kwargs: dict = {
                "stdout": asyncio.subprocess.PIPE,
                "stderr": asyncio.subprocess.DEVNULL,
                "cwd": cwd,
            }
            if sys.platform != "win32":
                kwargs["start_new_session"] = True
            process = await asyncio.create_subprocess_exec(*argv, **kwargs)
            handle.process = process
            try:
                assert process.stdout
                while True:
                    chunk = await process.stdout.read(_READ_CHUNK)
                    if not chunk:
                        break
                    line_buffer.feed(chunk)
                line_buffer.flush()
                code = await process.wait()
                logger.debug("%s exited with %s after %d lines", argv[0], code, len(buffer))
                return code
            finally:
                if process.returncode is None:
                    handle.terminate_process()

        handle = BackgroundHandle(asyncio.ensure_future(_run()), label=source.name)
        return handle

    return _generator


def make_executor_generator(
    fn: Callable[[dict[str, Any], str], Any],
    executor: Executor | None = None,
) -> Callable[["Source", "Session"], BackgroundHandle]:
    """
    Generator running fn(params, query) in a worker pool.

    Input and output are plain values (the source's params dict and the
    query string in, a candidate collection out), so a ProcessPoolExecutor
    works as well as a thread pool.
    """

    def _generator(source: "Source", session: "Session") -> BackgroundHandle:
        generation = source.begin_background()
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(executor, fn, dict(source.template.params), session.query)

        def _done(fut: asyncio.Future) -> None:
            if fut.cancelled() or fut.exception() is not None:
                return
            session.deliver(source, fut.result(), generation)

        future.add_done_callback(_done)
        return BackgroundHandle(future, label=source.name)

    return _generator
