"""Portal content router.

Everything here is public except the announcement board, which needs an
authenticated account of either kind.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from sgprp.api.middleware.auth import CurrentSession, DbSession
from sgprp.services.portal import PortalService

router = APIRouter(tags=["public"])


@router.get("/public/portal-settings")
async def portal_settings(db: DbSession) -> dict[str, str]:
    """Header and footer settings, with defaults for anything not configured."""
    return await PortalService(db).get_settings()


@router.get("/concursos")
async def list_concursos(db: DbSession) -> list[dict[str, Any]]:
    return await PortalService(db).list_concursos()


@router.get("/changelog")
async def list_changelog(db: DbSession) -> list[dict[str, Any]]:
    return await PortalService(db).list_changelog()


@router.get("/anuncios")
async def list_announcements(ctx: CurrentSession, db: DbSession) -> list[dict[str, Any]]:
    """Announcements for the caller. Citizens only see general ones."""
    return await PortalService(db).visible_announcements(ctx)
