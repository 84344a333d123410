"""Command denylist engine.

Classifies a shell command as allowed or blocked by matching a lowercased copy
against known-destructive invocations. This is a heuristic: quoting tricks,
renamed binaries or encoded payloads get past it. It is not a sandbox.
"""

from __future__ import annotations

import re

from cmd_service.utils.logging import get_logger

log = get_logger(__name__)

# Start of the string or right after a command separator
_SEGMENT = r"(^|[;&|])\s*"
_BLOCK_DEVICE = r"/dev/(sd[a-z]\d*|vd[a-z]\d*|nvme\d+n\d+(p\d+)?)\b"
# "/" or "/*" as a standalone argument
_ROOT_TARGET = r"\s+(/\s*($|[;&|])|/\*\s*($|[;&|]))"

NO_PRESERVE_ROOT = "--no-preserve-root"

# ── Root deletion (checked before the category patterns) ─────────────────
RM_ROOT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\brm\b[^;&|]*-[^;&|]*r[^;&|]*f[^;&|]*" + _ROOT_TARGET),
    re.compile(r"\brm\b[^;&|]*-[^;&|]*f[^;&|]*r[^;&|]*" + _ROOT_TARGET),
]

# ── Category patterns, first match wins ──────────────────────────────────
DENY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(_SEGMENT + r"(shutdown|reboot|halt|poweroff)\b"),
        "power control command",
    ),
    (re.compile(_SEGMENT + r"init\s+[06]\b"), "runlevel switch command"),
    (
        re.compile(_SEGMENT + r"systemctl\s+(reboot|poweroff|halt)\b"),
        "system power control command",
    ),
    (
        re.compile(_SEGMENT + r"(mkfs(\.[a-z0-9_+-]+)?|fdisk|sfdisk|parted|wipefs)\b"),
        "disk formatting/partition command",
    ),
    (re.compile(_SEGMENT + r"dd\b"), "raw disk copy command"),
    (re.compile(r"\b(of|if)=" + _BLOCK_DEVICE), "block-device access argument"),
    (re.compile(_SEGMENT + r":?\s*>\s*" + _BLOCK_DEVICE), "block-device overwrite"),
    (re.compile(_SEGMENT + r"kill\s+-9\s+-?1\b"), "kill-all command"),
]


# ── Public API ────────────────────────────────────────────────────────────

class CommandFilterResult:
    __slots__ = ("allowed", "reason")

    def __init__(self, allowed: bool, reason: str):
        self.allowed = allowed
        self.reason = reason

    def __bool__(self) -> bool:
        return self.allowed

    def __repr__(self) -> str:
        return f"CommandFilterResult(allowed={self.allowed!r}, reason={self.reason!r})"


def _blocked(reason: str) -> CommandFilterResult:
    log.warning("filter.blocked", reason=reason)
    return CommandFilterResult(False, reason)


def check_command(command: str) -> CommandFilterResult:
    """Check whether a shell command may run.

    Emptiness and length are the caller's concern; this only looks for
    destructive patterns.
    """
    lower = command.lower()

    if NO_PRESERVE_ROOT in lower:
        return _blocked("dangerous rm flag")

    for pat in RM_ROOT_PATTERNS:
        if pat.search(lower):
            return _blocked("root filesystem deletion")

    for pat, reason in DENY_PATTERNS:
        if pat.search(lower):
            return _blocked(reason)

    return CommandFilterResult(True, "allowed")
