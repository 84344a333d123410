"""Allowlisted tasks: fixed names mapped to argument vectors run without a shell."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

TASK_NAME_PATTERN = r"^[A-Za-z0-9_-]+$"

TASKS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "uptime": ("uptime",),
    "hostname": ("hostname",),
    "whoami": ("whoami",),
    "date": ("date",),
    "kernel": ("uname", "-a"),
    "disk": ("df", "-h"),
    "memory": ("free", "-m"),
    "processes": ("ps", "aux"),
    "network": ("ip", "-brief", "address"),
    "load": ("cat", "/proc/loadavg"),
})


def resolve_task(name: str) -> Optional[tuple[str, ...]]:
    return TASKS.get(name)


def task_names() -> list[str]:
    return sorted(TASKS)
