"""Common API response models."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool = True


class UsageResponse(BaseModel):
    mode: str = "direct_command"
    usage: str = "POST /run with raw command body"
    auth: str = "Authorization: Bearer <token>"


class TaskListResponse(BaseModel):
    mode: str = "fixed_task"
    tasks: list[str]
    auth: str = "X-Token: <token>"


class CommandRunResponse(BaseModel):
    command: str
    exit_code: int
    timed_out: bool
    output: str


class TaskRunResponse(BaseModel):
    task: str
    exit_code: int
    timed_out: bool
    output: str


class ErrorResponse(BaseModel):
    error: str
