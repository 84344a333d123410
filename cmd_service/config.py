"""Application settings loaded from environment variables."""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


class ServiceMode(str, Enum):
    command = "command"
    task = "task"


class Settings(BaseSettings):
    """All configuration is driven by environment variables.

    Built once at startup and never mutated afterwards.
    """

    # Static token; empty means every authenticated request is rejected
    cmd_service_token: str = ""

    # Free-form shell commands or allowlisted tasks
    cmd_service_mode: ServiceMode = ServiceMode.command

    # Listener
    cmd_service_host: str = "0.0.0.0"
    cmd_service_port: int = 8081

    # Execution
    cmd_service_shell: str = "/bin/bash"
    cmd_service_shell_flags: str = "-lc"
    cmd_service_command_timeout_seconds: float = 20.0
    cmd_service_task_timeout_seconds: float = 8.0
    cmd_service_max_command_length: int = 4096
    cmd_service_poll_interval_seconds: float = 0.05

    # Logging
    cmd_service_log_level: str = "INFO"
    cmd_service_log_json: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True}


# Singleton – import this from anywhere
settings = Settings()
