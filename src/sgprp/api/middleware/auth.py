"""Authentication dependencies for route-level access control.

Bearer tokens are resolved into a SessionContext once per request and
injected into handlers. Handlers and services receive the context
explicitly; there is no ambient "current user".

Usage:
    @router.get("/me")
    async def me(ctx: CurrentSession) -> dict[str, Any]:
        return ctx.to_dict()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sgprp.api.middleware.request_id import get_request_id
from sgprp.core.config import Settings
from sgprp.core.settings import get_settings
from sgprp.services.accounts import AccountService
from sgprp.services.context import RequestInfo, SessionContext
from sgprp.services.errors import AuthenticationError, PermissionDeniedError
from sgprp.services.permissions import AccountType
from sgprp.services.recovery import CodeSender, LoggingCodeSender

logger = logging.getLogger(__name__)

# Bearer security scheme for OpenAPI; missing tokens are handled below
bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Get a database session for the duration of the request."""
    from sgprp.db import get_async_session

    async with get_async_session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with, falling back to the environment."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


AppSettings = Annotated[Settings, Depends(get_app_settings)]


def get_code_sender(request: Request, settings: AppSettings) -> CodeSender:
    """Recovery code transport: the app's configured sender, or the log."""
    sender = getattr(request.app.state, "code_sender", None)
    return sender if sender is not None else LoggingCodeSender(debug=settings.debug)


def _get_client_ip(request: Request) -> str | None:
    """Extract client IP address, honouring X-Forwarded-For."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def get_request_info(request: Request) -> RequestInfo:
    return RequestInfo(
        ip_address=_get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        request_id=get_request_id(),
    )


async def get_session_context(
    request: Request,
    db: DbSession,
    settings: AppSettings,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> SessionContext:
    """Resolve the bearer token into the session context.

    Raises:
        AuthenticationError: Token missing, invalid or expired, or the
            account can no longer hold a session.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    service = AccountService.from_settings(db, settings)
    return await service.resolve_session(credentials.credentials, get_request_info(request))


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]


async def require_policial(ctx: CurrentSession) -> SessionContext:
    """Dependency that requires an approved police account."""
    if ctx.account_type is not AccountType.POLICIAL:
        raise PermissionDeniedError("Access restricted to police accounts")
    return ctx


async def require_civil(ctx: CurrentSession) -> SessionContext:
    """Dependency that requires a civil account."""
    if ctx.account_type is not AccountType.CIVIL:
        raise PermissionDeniedError("Access restricted to citizen accounts")
    return ctx


PolicialSession = Annotated[SessionContext, Depends(require_policial)]
CivilSession = Annotated[SessionContext, Depends(require_civil)]
