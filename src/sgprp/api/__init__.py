"""SGP-RP API service.

FastAPI application providing:
- Citizen and officer registration, login and password recovery
- Incident report filing and assignment
- RH administration panel (recruits, careers, tokens, content, audit log)
- Staff panel (organisational structure, portal settings, global search)

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sgprp.api.middleware import ErrorHandlerMiddleware, RequestIDMiddleware
from sgprp.api.routers import (
    admin_router,
    auth_router,
    boletim_router,
    policia_router,
    public_router,
    staff_router,
)
from sgprp.db import close_engine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sgprp.core.config import Settings
    from sgprp.services.recovery import CodeSender

logger = logging.getLogger(__name__)

API_TITLE = "SGP-RP API"
API_DESCRIPTION = """
Police and citizen portal backend.

## Namespaces

- **/api/auth/** - Citizen accounts and password recovery
- **/api/policia/** - Officer accounts and member area
- **/api/boletim/** - Citizen incident reports
- **/api/admin/** - RH administration panel
- **/api/staff/** - City staff panel
- **/api/public/**, **/api/concursos**, **/api/changelog** - Public content
"""

DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Dispose of the database engine on shutdown."""
    yield
    await close_engine()


def create_app(
    settings: Settings | None = None, *, code_sender: CodeSender | None = None
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. When omitted, request
            handlers load settings from the environment on first use.
        code_sender: Transport for password recovery codes. Defaults to
            logging them (see LoggingCodeSender).

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        app = create_app()

        # For testing
        test_settings = Settings(security=SecuritySettings(jwt_secret="..."))
        app = create_app(test_settings)
    """
    version = settings.app_version if settings else "0.1.0"
    title = f"{settings.app_name} API" if settings else API_TITLE

    app = FastAPI(
        title=title,
        description=API_DESCRIPTION,
        version=version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.code_sender = code_sender

    _add_middleware(app, settings)
    _include_routers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy"}

    logger.info("SGP-RP API application created (version=%s)", version)

    return app


def _add_middleware(app: FastAPI, settings: Settings | None) -> None:
    """Add middleware to the application.

    Starlette runs the last added middleware first, so the request ID is
    set before the error handler builds any error body.
    """
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)

    allowed_origins = settings.cors_origins if settings else DEFAULT_CORS_ORIGINS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def _include_routers(app: FastAPI) -> None:
    """Include API namespace routers, all under /api."""
    app.include_router(auth_router, prefix="/api")
    app.include_router(policia_router, prefix="/api")
    app.include_router(boletim_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(staff_router, prefix="/api")
    app.include_router(public_router, prefix="/api")
