"""RH administration panel router.

All endpoints require an approved police account with RH, staff, city
admin or developer capability. Corporation scoping and auditing happen
in the service layer (``sgprp.services.admin_actions``).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from sgprp.api.middleware.auth import AppSettings, DbSession, PolicialSession, require_policial
from sgprp.api.schemas.admin import (
    AnnouncementRequest,
    ChangelogRequest,
    ConcursoRequest,
    GenerateTokenRequest,
    GenerateTokenResponse,
    ManageCareerRequest,
    ReviewRecruitRequest,
    UpdatePolicialRequest,
)
from sgprp.api.schemas.auth import MessageResponse
from sgprp.services.admin_actions import AdminActionService
from sgprp.services.audit_log import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AuditLogService
from sgprp.services.context import SessionContext
from sgprp.services.permissions import ADMIN_PANEL_CAPABILITIES
from sgprp.services.portal import concurso_to_dict
from sgprp.services.roster import profile_to_dict

logger = logging.getLogger(__name__)


async def require_admin_panel(
    ctx: Annotated[SessionContext, Depends(require_policial)],
) -> SessionContext:
    """Dependency that requires access to the administration panel."""
    ctx.gate.require_any(ADMIN_PANEL_CAPABILITIES, "Access restricted to RH, staff or developers")
    return ctx


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_panel)],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Insufficient permissions"},
    },
)


def _service(db: DbSession, ctx: PolicialSession, settings: AppSettings) -> AdminActionService:
    return AdminActionService.from_settings(db, ctx, settings)


AdminService = Annotated[AdminActionService, Depends(_service)]


# -----------------------------------------------------------------------------
# Registration tokens
# -----------------------------------------------------------------------------


@router.post("/generate-token", response_model=GenerateTokenResponse)
async def generate_token(body: GenerateTokenRequest, service: AdminService) -> GenerateTokenResponse:
    """Issue a registration token for the actor's (or an allowed) corporation."""
    issued = await service.generate_registration_token(
        max_uses=body.max_uses,
        duration_hours=body.duration_hours,
        corporacao=body.corporacao,
    )
    return GenerateTokenResponse(
        message=f"Token generated for {issued.corporacao}",
        token=issued.token,
        corporacao=issued.corporacao,
        max_uses=issued.max_uses,
        expires_at=issued.expires_at,
    )


# -----------------------------------------------------------------------------
# Personnel
# -----------------------------------------------------------------------------


@router.get("/recrutas")
async def list_recruits(service: AdminService) -> list[dict[str, Any]]:
    return [profile_to_dict(p) for p in await service.list_recruits()]


@router.put("/recrutas/{recruit_id}", response_model=MessageResponse)
async def review_recruit(
    recruit_id: int, body: ReviewRecruitRequest, service: AdminService
) -> MessageResponse:
    """Approve (with division and rank) or reject a pending recruit."""
    await service.review_recruit(
        recruit_id, body.novo_status, divisao=body.divisao, patente=body.patente
    )
    return MessageResponse(message=f"Recruit {body.novo_status.lower()} successfully")


@router.put("/gerenciar-policial", response_model=MessageResponse)
async def manage_career(body: ManageCareerRequest, service: AdminService) -> MessageResponse:
    await service.manage_career(body.policial_id, body.acao, body.nova_patente)
    return MessageResponse(message=f"{body.acao} applied: new rank {body.nova_patente}")


@router.get("/lista-oficiais")
async def list_officers(service: AdminService) -> list[dict[str, Any]]:
    return [profile_to_dict(p) for p in await service.list_officers()]


@router.get("/search-policiais")
async def search_policiais(
    service: AdminService, query: Annotated[str | None, Query(max_length=150)] = None
) -> list[dict[str, Any]]:
    return [profile_to_dict(p) for p in await service.search_policiais(query)]


@router.put("/update-policial/{policial_id}", response_model=MessageResponse)
async def update_policial(
    policial_id: int, body: UpdatePolicialRequest, service: AdminService
) -> MessageResponse:
    """Edit an officer's data. Answers "no changes" when nothing differs."""
    outcome = await service.update_policial(policial_id, body.model_dump(exclude_unset=True))
    if not outcome.changed:
        return MessageResponse(message="No changes detected")
    return MessageResponse(message="Officer data updated", data=outcome.data)


@router.put("/demitir/{policial_id}", response_model=MessageResponse)
async def dismiss(policial_id: int, service: AdminService) -> MessageResponse:
    outcome = await service.dismiss(policial_id)
    nome = outcome.data.get("nome_completo", "Officer")
    if not outcome.changed:
        return MessageResponse(message=f"{nome} was already dismissed")
    return MessageResponse(message=f"{nome} dismissed")


# -----------------------------------------------------------------------------
# Announcements, concursos and changelog
# -----------------------------------------------------------------------------


@router.post("/anuncios", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def create_announcement(body: AnnouncementRequest, service: AdminService) -> MessageResponse:
    announcement = await service.create_announcement(body.titulo, body.conteudo, body.corporacao)
    return MessageResponse(message="Announcement published", data={"id": announcement.id})


@router.post("/concursos", status_code=status.HTTP_201_CREATED)
async def create_concurso(body: ConcursoRequest, service: AdminService) -> dict[str, Any]:
    return concurso_to_dict(await service.create_concurso(body.model_dump()))


@router.get("/concursos/{concurso_id}")
async def get_concurso(concurso_id: int, service: AdminService) -> dict[str, Any]:
    return concurso_to_dict(await service.get_concurso(concurso_id))


@router.put("/concursos/{concurso_id}")
async def update_concurso(
    concurso_id: int, body: ConcursoRequest, service: AdminService
) -> dict[str, Any]:
    return concurso_to_dict(await service.update_concurso(concurso_id, body.model_dump()))


@router.delete("/concursos/{concurso_id}", response_model=MessageResponse)
async def delete_concurso(concurso_id: int, service: AdminService) -> MessageResponse:
    await service.delete_concurso(concurso_id)
    return MessageResponse(message="Concurso deleted")


@router.post("/changelog", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def create_changelog_entry(body: ChangelogRequest, service: AdminService) -> MessageResponse:
    entry = await service.create_changelog_entry(body.title, body.content, body.version)
    return MessageResponse(message="Changelog entry created", data={"id": entry.id})


# -----------------------------------------------------------------------------
# Audit log
# -----------------------------------------------------------------------------


@router.get("/logs")
async def list_logs(
    ctx: PolicialSession,
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    text: Annotated[str | None, Query(max_length=200)] = None,
    action: str | None = None,
    date_filter: Annotated[date | None, Query(alias="date")] = None,
) -> dict[str, Any]:
    """Page through the audit log visible to the actor, newest first."""
    result = await AuditLogService(db).query(
        ctx.gate, page=page, limit=limit, text=text, action=action, on_date=date_filter
    )
    return result.to_dict()
