"""Bearer authentication dependency for bridge API routes."""

from __future__ import annotations

import hashlib
import secrets
from typing import Annotated, cast

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from otpsync.config import AppSettings

_bearer_scheme = HTTPBearer(auto_error=False)


def compute_token_sha256_digest(*, token: str) -> str:
    """Compute hex SHA-256 digest used for constant-time token comparison."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


async def require_bearer_auth(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(_bearer_scheme),
    ],
) -> None:
    """Require the configured bridge token; deny everything when unset."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized_error()

    settings = _resolve_settings(request=request)
    if settings.bridge_token is None:
        raise _unauthorized_error()

    expected_digest = compute_token_sha256_digest(token=settings.bridge_token)
    presented_digest = compute_token_sha256_digest(token=credentials.credentials)
    if not secrets.compare_digest(expected_digest, presented_digest):
        raise _unauthorized_error()


def _resolve_settings(*, request: Request) -> AppSettings:
    """Load settings from FastAPI state with explicit failure mode."""
    app_obj = cast("object", getattr(cast("object", request), "app", None))
    state_obj = cast("object", getattr(app_obj, "state", None))
    settings_obj = getattr(state_obj, "settings", None)
    if not isinstance(settings_obj, AppSettings):
        message = "Missing app settings: app.state.settings."
        raise TypeError(message)
    return settings_obj


def _unauthorized_error() -> HTTPException:
    """Build deterministic unauthorized error for bearer auth failures."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized.",
        headers={"WWW-Authenticate": "Bearer"},
    )
