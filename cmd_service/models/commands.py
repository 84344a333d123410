"""Command-execution data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

BLOCKED_PREFIX = "blocked command:"


class ExecutionResult(BaseModel):
    """Outcome of one execution attempt.

    Either the command reached the OS (``accepted``) and the exit/timeout/output
    fields describe what happened, or it did not and ``failure_reason`` says why.
    """

    model_config = ConfigDict(frozen=True)

    accepted: bool
    exit_code: int = -1
    timed_out: bool = False
    output: bytes = b""
    failure_reason: Optional[str] = None

    @model_validator(mode="after")
    def _check_signal_sets(self) -> "ExecutionResult":
        if self.accepted:
            if self.failure_reason is not None:
                raise ValueError("accepted result cannot carry a failure reason")
        else:
            if not self.failure_reason:
                raise ValueError("rejected result needs a failure reason")
            if self.timed_out or self.output or self.exit_code != -1:
                raise ValueError("rejected result cannot carry execution data")
        return self

    @classmethod
    def rejected(cls, reason: str) -> "ExecutionResult":
        return cls(accepted=False, failure_reason=reason)

    @property
    def blocked(self) -> bool:
        """True when the denylist refused the command."""
        return not self.accepted and self.failure_reason.startswith(BLOCKED_PREFIX)

    @property
    def text(self) -> str:
        return self.output.decode("utf-8", errors="replace")
