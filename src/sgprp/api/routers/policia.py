"""Police member router.

Registration and login for officers, plus the member area: incident
reports and police reports, the roster, profiles, career history, bug
reports and announcements.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, status

from sgprp.api.middleware.auth import AppSettings, DbSession, PolicialSession
from sgprp.api.schemas.auth import MessageResponse, PolicialLoginRequest, PolicialRegisterRequest
from sgprp.api.schemas.policia import (
    BoletimUpdateRequest,
    BugReportRequest,
    ProfileSelfUpdateRequest,
    RelatorioCreateRequest,
)
from sgprp.services.accounts import AccountService
from sgprp.services.admin_actions import AdminActionService
from sgprp.services.boletins import BoletimService
from sgprp.services.portal import PortalService
from sgprp.services.relatorios import RelatorioService
from sgprp.services.roster import RosterService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/policia",
    tags=["policia"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Police account required"},
    },
)


# -----------------------------------------------------------------------------
# Registration and login
# -----------------------------------------------------------------------------


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def register(
    body: PolicialRegisterRequest, db: DbSession, settings: AppSettings
) -> MessageResponse:
    """Register an officer through a registration token. The account starts pending."""
    service = AccountService.from_settings(db, settings)
    policial = await service.register_policial(
        nome_completo=body.nome_completo,
        passaporte=body.passaporte,
        discord_id=body.discord_id,
        gmail=str(body.gmail),
        senha=body.senha,
        registration_token=body.registration_token,
        telefone_rp=body.telefone_rp,
    )
    return MessageResponse(
        message="Registration received, awaiting review",
        data={"id": policial.id, "corporacao": policial.corporacao},
    )


@router.post("/login")
async def login(body: PolicialLoginRequest, db: DbSession, settings: AppSettings) -> dict[str, Any]:
    """Authenticate an approved officer and issue a bearer token."""
    service = AccountService.from_settings(db, settings)
    result = await service.login_policial(body.passaporte, body.senha)
    return {
        "message": "Login successful",
        "token": result.token.token,
        "expires_at": result.token.expires_at.isoformat(),
        "policial": result.account,
    }


# -----------------------------------------------------------------------------
# Incident reports
# -----------------------------------------------------------------------------


@router.get("/boletins")
async def list_boletins(ctx: PolicialSession, db: DbSession) -> list[dict[str, Any]]:  # noqa: ARG001
    return await BoletimService(db).list_all()


@router.get("/boletins/{boletim_id}")
async def get_boletim(
    boletim_id: int, ctx: PolicialSession, db: DbSession  # noqa: ARG001
) -> dict[str, Any]:
    return await BoletimService(db).get(boletim_id)


@router.put("/boletins/{boletim_id}/assumir", response_model=MessageResponse)
async def assume_boletim(boletim_id: int, ctx: PolicialSession, db: DbSession) -> MessageResponse:
    """Take responsibility for a report. 409 when another officer already has it."""
    await BoletimService(db).assume(ctx, boletim_id)
    return MessageResponse(message="Case assumed successfully")


@router.put("/boletins/{boletim_id}", response_model=MessageResponse)
async def update_boletim(
    boletim_id: int, body: BoletimUpdateRequest, ctx: PolicialSession, db: DbSession
) -> MessageResponse:
    """Update status and investigation notes. 403 when another officer is responsible."""
    changes = body.model_dump(exclude_unset=True, exclude={"status"})
    boletim = await BoletimService(db).update(ctx, boletim_id, body.status, changes)
    return MessageResponse(message="Incident report updated", data=boletim)


@router.post("/relatorios", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def create_relatorio(
    body: RelatorioCreateRequest, ctx: PolicialSession, db: DbSession
) -> MessageResponse:
    relatorio = await RelatorioService(db).create(ctx, **body.model_dump(exclude_unset=True))
    return MessageResponse(
        message="Report created successfully", data={"id_relatorio_criado": relatorio.id}
    )


# -----------------------------------------------------------------------------
# Roster
# -----------------------------------------------------------------------------


@router.get("/policiais")
async def list_officers(ctx: PolicialSession, db: DbSession) -> list[dict[str, Any]]:
    return await RosterService(db).list_officers(ctx)


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------


@router.get("/perfil/{policial_id}")
async def get_profile(policial_id: int, ctx: PolicialSession, db: DbSession) -> dict[str, Any]:
    return await RosterService(db).get_profile(ctx, policial_id)


@router.get("/perfil/{policial_id}/historico")
async def get_history(
    policial_id: int, ctx: PolicialSession, db: DbSession
) -> list[dict[str, Any]]:
    return await RosterService(db).get_history(ctx, policial_id)


@router.put("/perfil/self", response_model=MessageResponse)
async def update_own_profile(
    body: ProfileSelfUpdateRequest, ctx: PolicialSession, db: DbSession
) -> MessageResponse:
    profile = await RosterService(db).update_self(
        ctx, nome_completo=body.nome_completo, gmail=str(body.gmail)
    )
    return MessageResponse(message="Profile updated", data=profile)


# -----------------------------------------------------------------------------
# Member area
# -----------------------------------------------------------------------------


@router.post("/report-bug", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def report_bug(
    body: BugReportRequest, ctx: PolicialSession, db: DbSession, settings: AppSettings
) -> MessageResponse:
    await AdminActionService.from_settings(db, ctx, settings).report_bug(body.description)
    return MessageResponse(message="Bug report sent, thank you")


@router.get("/anuncios")
async def list_announcements(ctx: PolicialSession, db: DbSession) -> list[dict[str, Any]]:
    return await PortalService(db).visible_announcements(ctx)
