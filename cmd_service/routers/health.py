"""Health-check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from cmd_service.models.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def service_health() -> HealthResponse:
    """Basic liveness probe (no auth required)."""
    return HealthResponse()
