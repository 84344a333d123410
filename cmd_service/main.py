"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cmd_service import __version__
from cmd_service.config import ServiceMode, Settings, settings
from cmd_service.routers import catalog, command, health, task
from cmd_service.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(err.get("msg", "invalid value") for err in exc.errors())
    return JSONResponse(status_code=400, content={"error": f"invalid request: {problems}"})


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Build the service for the configured mode."""
    _cfg = cfg or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown hooks."""
        setup_logging(_cfg.cmd_service_log_level, json=_cfg.cmd_service_log_json)
        if not _cfg.cmd_service_token:
            log.warning("auth.token_missing", hint="all run requests will be rejected")
        log.info("service.started", mode=_cfg.cmd_service_mode.value)
        yield
        log.info("service.stopped")

    app = FastAPI(
        title="Command Service",
        description="Remote command execution with a denylist and bounded runtime",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = _cfg

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    app.include_router(health.router)
    app.include_router(catalog.router)
    if _cfg.cmd_service_mode is ServiceMode.task:
        app.include_router(task.router)
    else:
        app.include_router(command.router)
    return app


app = create_app()


def run() -> None:
    """Console-script entry: serve on the configured host/port until killed."""
    uvicorn.run(app, host=settings.cmd_service_host, port=settings.cmd_service_port)
