"""Request-level entry points: preconditions, then supervised execution."""

from __future__ import annotations

import os
import time
from typing import Optional, Sequence

from cmd_service.config import Settings, settings
from cmd_service.models.commands import BLOCKED_PREFIX, ExecutionResult
from cmd_service.services.command_filter import check_command
from cmd_service.services.supervisor import execute
from cmd_service.services.tasks import resolve_task
from cmd_service.utils.logging import get_logger

log = get_logger(__name__)


def _supervise(
    argv: Sequence[str], timeout: float, cfg: Settings, **context: str,
) -> ExecutionResult:
    started = time.monotonic()
    result = execute(argv, timeout, poll_interval=cfg.cmd_service_poll_interval_seconds)
    if result.accepted:
        log.info(
            "run.finished",
            exit_code=result.exit_code,
            timed_out=result.timed_out,
            output_bytes=len(result.output),
            elapsed=round(time.monotonic() - started, 3),
            **context,
        )
    else:
        log.error("run.not_started", reason=result.failure_reason, **context)
    return result


def _check_text(text: str, cfg: Settings) -> Optional[ExecutionResult]:
    if not text:
        return ExecutionResult.rejected("empty command")
    limit = cfg.cmd_service_max_command_length
    if len(text) > limit:
        return ExecutionResult.rejected(f"command too long (max {limit} chars)")
    if "\x00" in text:
        return ExecutionResult.rejected("invalid command: contains NUL byte")
    try:
        os.fsencode(text)
    except UnicodeEncodeError:
        return ExecutionResult.rejected("invalid command: not encodable as bytes")
    return None


def run_command(
    command: str,
    *,
    cfg: Settings | None = None,
    timeout: float | None = None,
) -> ExecutionResult:
    """Validate a free-form command and run it through the configured shell.

    The command is passed to the shell as a single ``-c`` argument.
    """
    _cfg = cfg or settings
    cmd = command.strip()

    rejected = _check_text(cmd, _cfg)
    if rejected is not None:
        log.info("run.rejected", reason=rejected.failure_reason)
        return rejected

    filt = check_command(cmd)
    if not filt:
        log.info("run.blocked", reason=filt.reason)
        return ExecutionResult.rejected(f"{BLOCKED_PREFIX} {filt.reason}")

    argv = [_cfg.cmd_service_shell, _cfg.cmd_service_shell_flags, cmd]
    return _supervise(
        argv,
        timeout if timeout is not None else _cfg.cmd_service_command_timeout_seconds,
        _cfg,
        mode="command",
    )


def run_task(
    task: str,
    *,
    cfg: Settings | None = None,
    timeout: float | None = None,
) -> ExecutionResult:
    """Run an allowlisted task by name; unknown names never spawn anything."""
    _cfg = cfg or settings
    name = task.strip()

    rejected = _check_text(name, _cfg)
    if rejected is not None:
        log.info("run.rejected", reason=rejected.failure_reason)
        return rejected

    argv = resolve_task(name)
    if argv is None:
        log.info("run.unknown_task", task=name)
        return ExecutionResult.rejected("task not allowed")

    return _supervise(
        argv,
        timeout if timeout is not None else _cfg.cmd_service_task_timeout_seconds,
        _cfg,
        mode="task",
        task=name,
    )
