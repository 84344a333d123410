"""Free-form command endpoint."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from cmd_service.auth import get_settings, require_bearer_token
from cmd_service.config import Settings
from cmd_service.models.commands import ExecutionResult
from cmd_service.models.responses import CommandRunResponse, ErrorResponse
from cmd_service.services.runner import run_command

router = APIRouter(tags=["run"], dependencies=[Depends(require_bearer_token)])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "\\": "\\",
    '"': '"',
    "/": "/",
}


def _unescape_lenient(quoted: str) -> str:
    """Strip the outer quotes and resolve backslash escapes.

    Unknown escapes keep the escaped character (``\\$`` becomes ``$``); a
    trailing lone backslash is dropped.
    """
    out: list[str] = []
    inner = quoted[1:-1]
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= len(inner):
            break
        nxt = inner[i + 1]
        out.append(_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


def decode_command_body(raw: bytes) -> str:
    """Turn a request body into command text.

    Non-UTF-8 bytes survive as surrogate escapes so the shell sees the exact
    bytes sent. A body that is a JSON string literal is unescaped; a quoted
    body that is not valid JSON is unescaped leniently.
    """
    text = raw.decode("utf-8", errors="surrogateescape").strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = _unescape_lenient(text)
        if isinstance(decoded, str):
            text = decoded
    return text.strip()


def printable(text: str) -> str:
    """Make command text safe for a UTF-8 JSON response."""
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def raise_for_rejection(result: ExecutionResult) -> None:
    if not result.accepted:
        raise HTTPException(
            status_code=403 if result.blocked else 400,
            detail=result.failure_reason,
        )


@router.post("/run", response_model=CommandRunResponse, responses=ERROR_RESPONSES)
async def run_command_endpoint(
    request: Request,
    cfg: Settings = Depends(get_settings),
) -> CommandRunResponse:
    """Run a raw shell command sent as the request body."""
    command = decode_command_body(await request.body())
    if not command:
        raise HTTPException(
            status_code=400,
            detail="missing command: send command in request body",
        )

    result = await run_in_threadpool(run_command, command, cfg=cfg)
    raise_for_rejection(result)
    return CommandRunResponse(
        command=printable(command),
        exit_code=result.exit_code,
        timed_out=result.timed_out,
        output=result.text,
    )
