"""Child process execution with streamed output."""

import asyncio
import os
from typing import Optional

import psutil

from pyembed.types import OutputCallback, ProcessInvocation, ProcessStartedCallback
from pyembed.logging import get_logger

logger = get_logger(__name__)

# Longest single output line we will buffer; longer runs are delivered in pieces
STREAM_LIMIT = 1024 * 1024
READ_CHUNK = 64 * 1024


def skip_blank(callback: OutputCallback) -> OutputCallback:
    """Wrap a line callback so whitespace-only lines are dropped."""

    def forward(line: str) -> None:
        if line.strip():
            callback(line)

    return forward


async def _pump_lines(stream: asyncio.StreamReader, callback: OutputCallback) -> None:
    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            break

        *lines, pending = (pending + chunk).split(b"\n")
        for raw in lines:
            callback(_decode_line(raw))

        # over-long line goes out in STREAM_LIMIT pieces
        while len(pending) > STREAM_LIMIT:
            callback(_decode_line(pending[:STREAM_LIMIT]))
            pending = pending[STREAM_LIMIT:]

    if pending:
        callback(_decode_line(pending))


def _decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


async def run_process(
    invocation: ProcessInvocation,
    on_stdout: OutputCallback,
    on_stderr: OutputCallback,
    on_process_started: Optional[ProcessStartedCallback] = None,
) -> int:
    """Run a child process, streaming its output, and return the exit code.

    Lines reach the callbacks as they are produced, in order within each
    stream. A nonzero exit code is returned, not raised; deciding whether it
    is a failure is up to the caller.
    """
    env = None
    if invocation.env_overlay:
        env = {**os.environ, **invocation.env_overlay}

    logger.debug(
        "process_exec",
        executable=str(invocation.executable),
        args=invocation.command_line,
        cwd=str(invocation.working_dir) if invocation.working_dir else None,
    )

    process = await asyncio.create_subprocess_exec(
        str(invocation.executable),
        *[str(a) for a in invocation.arguments],
        cwd=invocation.working_dir,
        env=env,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    pumps = [
        asyncio.ensure_future(_pump_lines(process.stdout, on_stdout)),
        asyncio.ensure_future(_pump_lines(process.stderr, on_stderr)),
    ]
    try:
        if on_process_started:
            on_process_started(process)
        await asyncio.gather(*pumps)
    except BaseException:
        # a raising callback or cancellation must not leave the child running
        for pump in pumps:
            pump.cancel()
        _kill(process)
        await process.wait()
        raise

    returncode = await process.wait()

    logger.debug(
        "process_complete",
        executable=str(invocation.executable),
        pid=process.pid,
        returncode=returncode,
    )
    return returncode


def terminate_process_tree(pid: int, timeout: float = 5.0) -> bool:
    """Kill a process and all of its descendants, waiting up to ``timeout``.

    Returns True when every process in the tree is gone.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return True

    try:
        procs = parent.children(recursive=True) + [parent]
    except psutil.NoSuchProcess:
        return True

    for proc in procs:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(procs, timeout=timeout)
    if alive:
        logger.warning(
            "process_tree_survivors", pid=pid, alive=[p.pid for p in alive]
        )
    else:
        logger.info("process_tree_terminated", pid=pid, count=len(procs))
    return not alive
