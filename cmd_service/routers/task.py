"""Allowlisted task endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path
from fastapi.concurrency import run_in_threadpool

from cmd_service.auth import get_settings, require_task_token
from cmd_service.config import Settings
from cmd_service.models.responses import TaskRunResponse
from cmd_service.routers.command import ERROR_RESPONSES, raise_for_rejection
from cmd_service.services.runner import run_task
from cmd_service.services.tasks import TASK_NAME_PATTERN

router = APIRouter(tags=["run"], dependencies=[Depends(require_task_token)])


@router.post("/run/{task}", response_model=TaskRunResponse, responses=ERROR_RESPONSES)
async def run_task_endpoint(
    task: str = Path(pattern=TASK_NAME_PATTERN),
    cfg: Settings = Depends(get_settings),
) -> TaskRunResponse:
    """Run one of the fixed tasks listed by ``GET /tasks``."""
    result = await run_in_threadpool(run_task, task, cfg=cfg)
    raise_for_rejection(result)
    return TaskRunResponse(
        task=task,
        exit_code=result.exit_code,
        timed_out=result.timed_out,
        output=result.text,
    )
