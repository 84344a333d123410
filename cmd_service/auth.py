"""Static-token authentication dependencies."""

from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from cmd_service.config import Settings

_authorization_header = APIKeyHeader(name="Authorization", auto_error=False)
_task_token_header = APIKeyHeader(name="X-Token", auto_error=False)

_BEARER_PREFIX = "bearer "


def get_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def parse_authorization(value: str | None) -> str:
    """Extract the token from an ``Authorization`` value.

    The ``Bearer`` prefix is matched case-insensitively; a bare token is
    accepted as-is.
    """
    auth = (value or "").strip()
    if auth.lower().startswith(_BEARER_PREFIX):
        return auth[len(_BEARER_PREFIX):].strip()
    return auth


def _token_matches(got: str, expected: str) -> bool:
    # An unset token never authorizes anything
    if not expected or not got:
        return False
    return secrets.compare_digest(got.encode(), expected.encode())


async def require_bearer_token(
    authorization: str | None = Security(_authorization_header),
    cfg: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency that enforces ``Authorization: Bearer <token>``."""
    token = parse_authorization(authorization)
    if not _token_matches(token, cfg.cmd_service_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized: expected Authorization header (Bearer <token>)",
        )
    return token


async def require_task_token(
    token: str | None = Security(_task_token_header),
    cfg: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency that enforces ``X-Token: <token>``."""
    token = (token or "").strip()
    if not _token_matches(token, cfg.cmd_service_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized: expected X-Token header",
        )
    return token
