"""Usage / task listing endpoint."""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends

from cmd_service.auth import get_settings
from cmd_service.config import ServiceMode, Settings
from cmd_service.models.responses import TaskListResponse, UsageResponse
from cmd_service.services.tasks import task_names

router = APIRouter(tags=["tasks"])


@router.get("/tasks", response_model=None)
async def list_tasks(
    cfg: Settings = Depends(get_settings),
) -> Union[UsageResponse, TaskListResponse]:
    """Describe how to call the service in its current mode."""
    if cfg.cmd_service_mode is ServiceMode.task:
        return TaskListResponse(tasks=task_names())
    return UsageResponse()
