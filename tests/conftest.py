"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("CMD_SERVICE_TOKEN", "")
os.environ.setdefault("CMD_SERVICE_MODE", "command")

import pytest
from httpx import ASGITransport, AsyncClient

from cmd_service.config import ServiceMode, Settings
from tests.factories import make_settings


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def spawn_spy(monkeypatch):
    """Record every argv handed to the supervisor."""
    import cmd_service.services.runner as runner_mod

    calls: list[list[str]] = []
    original = runner_mod.execute

    def spy(argv, timeout, **kwargs):
        calls.append(list(argv))
        return original(argv, timeout, **kwargs)

    monkeypatch.setattr(runner_mod, "execute", spy)
    return calls


def _client_for(cfg: Settings) -> AsyncClient:
    from cmd_service.main import create_app

    transport = ASGITransport(app=create_app(cfg))
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
async def client(spawn_spy):
    """Async test client for a service in free-form command mode."""
    async with _client_for(make_settings()) as ac:
        yield ac


@pytest.fixture
async def task_client(spawn_spy):
    """Async test client for a service in allowlisted-task mode."""
    async with _client_for(make_settings(cmd_service_mode=ServiceMode.task)) as ac:
        yield ac


@pytest.fixture
async def tokenless_client(spawn_spy):
    """Service started without CMD_SERVICE_TOKEN."""
    async with _client_for(make_settings(cmd_service_token="")) as ac:
        yield ac
