"""FastAPI application factory and lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from fastapi import Depends, FastAPI, Request

from otpsync.api.bearer_auth import require_bearer_auth
from otpsync.api.routes.bridge import router as bridge_router
from otpsync.api.routes.health import router as health_router
from otpsync.api.runtime import (
    PhoneAuthProviderFactory,
    close_shell_runtime,
    identity_toolkit_provider_factory,
    open_shell_runtime,
)
from otpsync.config import AppSettings, bind_correlation_id, init_logging, load_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx
    from starlette.middleware.base import RequestResponseEndpoint
    from starlette.responses import Response

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"


class StartupDependencyError(RuntimeError):
    """Raised when app state lacks objects the lifespan needs."""

    @classmethod
    def missing_settings(cls) -> StartupDependencyError:
        """Build error for absent settings on app state."""
        message = "Missing app settings: app.state.settings."
        return cls(message)

    @classmethod
    def invalid_provider_factory(cls) -> StartupDependencyError:
        """Build error for non-callable provider factory overrides."""
        message = (
            "Invalid phone auth provider factory: expected callable on app.state."
        )
        return cls(message)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shell runtime, publish startup events, close on shutdown."""
    settings = _resolve_settings(app)
    runtime = await open_shell_runtime(
        settings,
        provider_factory=_resolve_provider_factory(app),
        transport=_resolve_http_transport(app),
    )
    app.state.shell_runtime = runtime
    logger.info("Starting otpsync bridge (db=%s)", settings.db_path)
    try:
        await runtime.bridge.start()
        yield
    finally:
        await close_shell_runtime(runtime)
        _clear_runtime_state(app)
        logger.info("Shutting down otpsync bridge")


def create_app() -> FastAPI:
    """Create and configure a new FastAPI application instance."""
    settings = load_settings()
    init_logging(settings.log_level)

    app = FastAPI(
        title="otpsync",
        description="Phone OTP sign-in and push token sync bridge",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.phone_auth_provider_factory = identity_toolkit_provider_factory

    @app.middleware("http")
    async def _bind_request_correlation_id(
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        requested = request.headers.get(CORRELATION_ID_HEADER)
        with bind_correlation_id(requested) as bound:
            response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = bound
        return response

    app.include_router(health_router)
    app.include_router(
        bridge_router,
        dependencies=[Depends(require_bearer_auth)],
    )
    return app


def _resolve_settings(app: FastAPI) -> AppSettings:
    settings_obj = getattr(cast("object", app.state), "settings", None)
    if not isinstance(settings_obj, AppSettings):
        raise StartupDependencyError.missing_settings()
    return settings_obj


def _resolve_provider_factory(app: FastAPI) -> PhoneAuthProviderFactory:
    factory_obj = getattr(
        cast("object", app.state),
        "phone_auth_provider_factory",
        identity_toolkit_provider_factory,
    )
    if not callable(factory_obj):
        raise StartupDependencyError.invalid_provider_factory()
    return cast("PhoneAuthProviderFactory", factory_obj)


def _resolve_http_transport(app: FastAPI) -> httpx.AsyncBaseTransport | None:
    """Optional transport override used to fake the backend in tests."""
    transport_obj = getattr(cast("object", app.state), "http_transport", None)
    return cast("httpx.AsyncBaseTransport | None", transport_obj)


def _clear_runtime_state(app: FastAPI) -> None:
    """Remove runtime objects from app state after lifespan shutdown."""
    state = cast("object", app.state)
    if hasattr(state, "shell_runtime"):
        delattr(state, "shell_runtime")
