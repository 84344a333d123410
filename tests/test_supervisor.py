"""Tests for child-process supervision."""

from __future__ import annotations

import errno
import os
import subprocess
import time

import pytest

from cmd_service.services import supervisor
from cmd_service.services.supervisor import (
    ABNORMAL_EXIT_CODE,
    EXEC_FAILED_EXIT_CODE,
    KILLED_EXIT_CODE,
    execute,
)


def test_echo_output_exact():
    result = execute(["echo", "hello"], timeout=5, poll_interval=0.01)
    assert result.accepted
    assert result.exit_code == 0
    assert result.timed_out is False
    assert result.output == b"hello\n"
    assert result.failure_reason is None


def test_real_exit_status():
    result = execute(["/bin/sh", "-c", "exit 3"], timeout=5, poll_interval=0.01)
    assert result.accepted
    assert result.exit_code == 3
    assert result.timed_out is False


def test_stderr_interleaved_in_order():
    script = "echo one; echo two 1>&2; echo three"
    result = execute(["/bin/sh", "-c", script], timeout=5, poll_interval=0.01)
    assert result.output == b"one\ntwo\nthree\n"


def test_large_output_captured_completely():
    # Well beyond a pipe buffer, so the child blocks unless the parent reads
    script = "i=0; while [ $i -lt 20000 ]; do echo line-$i; i=$((i+1)); done"
    result = execute(["/bin/sh", "-c", script], timeout=10, poll_interval=0.01)
    lines = result.output.decode().splitlines()
    assert len(lines) == 20000
    assert lines[0] == "line-0"
    assert lines[-1] == "line-19999"


def test_timeout_kills_child_promptly():
    started = time.monotonic()
    result = execute(["sleep", "30"], timeout=1, poll_interval=0.01)
    elapsed = time.monotonic() - started
    assert result.accepted
    assert result.timed_out is True
    assert result.exit_code == KILLED_EXIT_CODE
    assert elapsed < 5


def test_output_before_timeout_is_kept():
    result = execute(
        ["/bin/sh", "-c", "echo started; exec sleep 30"], timeout=1, poll_interval=0.01,
    )
    assert result.timed_out is True
    assert result.output == b"started\n"


def test_killed_by_signal_is_abnormal():
    result = execute(["/bin/sh", "-c", "kill -9 $$"], timeout=5, poll_interval=0.01)
    assert result.accepted
    assert result.timed_out is False
    assert result.exit_code == ABNORMAL_EXIT_CODE


def test_missing_program_reports_exec_failure():
    result = execute(["/nonexistent/program-xyz"], timeout=5)
    assert result.accepted
    assert result.exit_code == EXEC_FAILED_EXIT_CODE
    assert result.output == b""


def test_pipe_failure_is_rejected(monkeypatch):
    def broken_pipe():
        raise OSError(errno.EMFILE, "Too many open files")

    monkeypatch.setattr(supervisor.os, "pipe", broken_pipe)
    result = execute(["echo", "hi"], timeout=5)
    assert not result.accepted
    assert result.failure_reason == "pipe failed"
    assert result.output == b""


def test_spawn_failure_is_rejected_and_closes_pipe(monkeypatch):
    opened: list[int] = []
    real_pipe = os.pipe

    def tracking_pipe():
        fds = real_pipe()
        opened.extend(fds)
        return fds

    def broken_popen(*args, **kwargs):
        raise OSError(errno.EAGAIN, "Resource temporarily unavailable")

    monkeypatch.setattr(supervisor.os, "pipe", tracking_pipe)
    monkeypatch.setattr(supervisor.subprocess, "Popen", broken_popen)
    result = execute(["echo", "hi"], timeout=5)
    assert not result.accepted
    assert result.failure_reason == "spawn failed"
    for fd in opened:
        with pytest.raises(OSError):
            os.fstat(fd)


def test_child_reaped_when_loop_raises(monkeypatch):
    spawned: list[subprocess.Popen] = []
    real_popen = subprocess.Popen

    def tracking_popen(*args, **kwargs):
        proc = real_popen(*args, **kwargs)
        spawned.append(proc)
        return proc

    def exploding_read(fd, buf):
        raise RuntimeError("boom")

    monkeypatch.setattr(supervisor.subprocess, "Popen", tracking_popen)
    monkeypatch.setattr(supervisor, "_read_chunk", exploding_read)
    with pytest.raises(RuntimeError):
        execute(["sleep", "30"], timeout=5)
    assert spawned[0].returncode is not None


@pytest.mark.parametrize("bad_arg", ["a\x00b", "\ud800"])
def test_unspawnable_argv_is_rejected_and_closes_pipe(monkeypatch, bad_arg):
    opened: list[int] = []
    real_pipe = os.pipe

    def tracking_pipe():
        fds = real_pipe()
        opened.extend(fds)
        return fds

    monkeypatch.setattr(supervisor.os, "pipe", tracking_pipe)
    result = execute(["echo", bad_arg], timeout=5)
    assert not result.accepted
    assert result.failure_reason == "spawn failed"
    for fd in opened:
        with pytest.raises(OSError):
            os.fstat(fd)


def test_pipe_above_fd_setsize():
    resource = pytest.importorskip("resource")
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    wanted = 1200
    if soft < wanted:
        if hard != resource.RLIM_INFINITY and hard < wanted:
            pytest.skip("open-file limit too low")
        resource.setrlimit(resource.RLIMIT_NOFILE, (wanted, hard))

    held: list[int] = []
    try:
        while not held or held[-1] <= 1100:
            held.append(os.open(os.devnull, os.O_RDONLY))
        result = execute(["/bin/sh", "-c", "sleep 0.2; echo hi"], timeout=5, poll_interval=0.01)
    finally:
        for fd in held:
            os.close(fd)
        resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))

    assert result.accepted
    assert result.exit_code == 0
    assert result.output == b"hi\n"
