"""Child-process supervision with bounded wall-clock time.

One call owns one child and one pipe. Both stdout and stderr go to the pipe's
write end; the parent polls the non-blocking read end while waiting for the
child, and kills it with SIGKILL once the deadline passes. The child is reaped
on every path out of :func:`execute`.

Only the immediate child is signalled on timeout. Anything it forked keeps
running if it ignored the parent's death.
"""

from __future__ import annotations

import os
import selectors
import subprocess
import time
from typing import Sequence

from cmd_service.models.commands import ExecutionResult
from cmd_service.utils.logging import get_logger

log = get_logger(__name__)

# Sentinel exit codes; real exit statuses are 0-255
KILLED_EXIT_CODE = -2
ABNORMAL_EXIT_CODE = -1
# Same status a shell reports for a missing program
EXEC_FAILED_EXIT_CODE = 127

DEFAULT_POLL_INTERVAL = 0.05
_CHUNK_SIZE = 65536


def _read_chunk(fd: int, buf: bytearray) -> bool:
    """Append whatever is ready on *fd* to *buf*. Returns True on end-of-stream."""
    try:
        data = os.read(fd, _CHUNK_SIZE)
    except BlockingIOError:
        return False
    if not data:
        return True
    buf.extend(data)
    return False


def _drain(fd: int, buf: bytearray) -> None:
    while True:
        try:
            data = os.read(fd, _CHUNK_SIZE)
        except BlockingIOError:
            return
        if not data:
            return
        buf.extend(data)


def _exit_code(returncode: int, timed_out: bool) -> int:
    if timed_out:
        return KILLED_EXIT_CODE
    if returncode >= 0:
        return returncode
    # Negative returncode: terminated by a signal
    return ABNORMAL_EXIT_CODE


def execute(
    argv: Sequence[str],
    timeout: float,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> ExecutionResult:
    """Run *argv* without a shell and collect its combined output.

    Pipe or spawn failures come back as rejected results. A program that
    cannot be executed is reported as an ordinary exit with status 127.
    """
    try:
        read_fd, write_fd = os.pipe()
    except OSError as exc:
        log.error("supervisor.pipe_failed", error=str(exc))
        return ExecutionResult.rejected("pipe failed")
    os.set_blocking(read_fd, False)

    try:
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=write_fd,
            stderr=write_fd,
        )
    except (FileNotFoundError, PermissionError) as exc:
        os.close(read_fd)
        os.close(write_fd)
        log.warning("supervisor.exec_failed", program=argv[0], error=str(exc))
        return ExecutionResult(accepted=True, exit_code=EXEC_FAILED_EXIT_CODE)
    except (OSError, ValueError) as exc:
        # ValueError: argv that cannot become a C string (NUL, lone surrogate)
        os.close(read_fd)
        os.close(write_fd)
        log.error("supervisor.spawn_failed", program=argv[0], error=str(exc))
        return ExecutionResult.rejected("spawn failed")

    # EOF on read_fd is only observable once the parent's copy is gone
    os.close(write_fd)
    log.debug("supervisor.spawned", pid=proc.pid, program=argv[0])

    output = bytearray()
    timed_out = False
    eof = False
    deadline = time.monotonic() + timeout
    try:
        with selectors.DefaultSelector() as sel:
            sel.register(read_fd, selectors.EVENT_READ)
            while True:
                if not eof:
                    eof = _read_chunk(read_fd, output)

                if proc.poll() is not None:
                    break

                if time.monotonic() > deadline:
                    timed_out = True
                    proc.kill()
                    proc.wait()
                    log.warning("supervisor.timeout", pid=proc.pid, timeout=timeout)
                    break

                if eof:
                    time.sleep(poll_interval)
                else:
                    # epoll/poll based, so no FD_SETSIZE ceiling on read_fd
                    sel.select(poll_interval)

        _drain(read_fd, output)
    finally:
        if proc.returncode is None:
            proc.kill()
            proc.wait()
        os.close(read_fd)

    return ExecutionResult(
        accepted=True,
        exit_code=_exit_code(proc.returncode, timed_out),
        timed_out=timed_out,
        output=bytes(output),
    )
