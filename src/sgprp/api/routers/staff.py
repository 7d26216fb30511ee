"""Staff panel router.

City-wide administration: global registration tokens, account search,
portal settings and the organisational structure (corporations, ranks,
divisions). Mutations require staff, city admin or developer capability;
the structure listing is also available to RH.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from sgprp.api.middleware.auth import AppSettings, DbSession, PolicialSession
from sgprp.api.schemas.admin import (
    CorporationPermissionsRequest,
    CorporationRequest,
    DivisionRequest,
    GenerateTokenRequest,
    GenerateTokenResponse,
    PortalSettingsRequest,
    RankRequest,
    StaffSearchRequest,
)
from sgprp.api.schemas.auth import MessageResponse
from sgprp.services.admin_actions import AdminActionService
from sgprp.services.structure import (
    StructureService,
    corporation_to_dict,
    division_to_dict,
    rank_to_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/staff",
    tags=["staff"],
    responses={
        401: {"description": "Authentication required"},
        403: {"description": "Staff permissions required"},
    },
)


def _admin_service(
    db: DbSession, ctx: PolicialSession, settings: AppSettings
) -> AdminActionService:
    return AdminActionService.from_settings(db, ctx, settings)


def _structure_service(db: DbSession, ctx: PolicialSession) -> StructureService:
    return StructureService(db, ctx)


AdminService = Annotated[AdminActionService, Depends(_admin_service)]
Structure = Annotated[StructureService, Depends(_structure_service)]


# -----------------------------------------------------------------------------
# Accounts and tokens
# -----------------------------------------------------------------------------


@router.post("/search-users")
async def search_users(body: StaffSearchRequest, service: AdminService) -> dict[str, Any]:
    users = await service.staff_search_users(body.query, body.search_type)
    return {"users": users}


@router.post("/generate-global-token", response_model=GenerateTokenResponse)
async def generate_global_token(
    body: GenerateTokenRequest, service: AdminService
) -> GenerateTokenResponse:
    """Issue a registration token for any corporation. The corporation is required."""
    issued = await service.generate_registration_token(
        max_uses=body.max_uses,
        duration_hours=body.duration_hours,
        corporacao=body.corporacao,
        global_token=True,
    )
    return GenerateTokenResponse(
        message=f"Global token generated for {issued.corporacao}",
        token=issued.token,
        corporacao=issued.corporacao,
        max_uses=issued.max_uses,
        expires_at=issued.expires_at,
    )


@router.put("/portal-settings", response_model=MessageResponse)
async def update_portal_settings(
    body: PortalSettingsRequest, service: AdminService
) -> MessageResponse:
    changes = await service.update_portal_settings(body.model_dump())
    return MessageResponse(message="Portal settings updated", data=changes)


# -----------------------------------------------------------------------------
# Structure
# -----------------------------------------------------------------------------


@router.get("/structure")
async def get_structure(service: Structure) -> dict[str, list[dict[str, Any]]]:
    return await service.get_structure()


@router.post("/corporacoes", status_code=status.HTTP_201_CREATED)
async def create_corporation(body: CorporationRequest, service: Structure) -> dict[str, Any]:
    return corporation_to_dict(await service.create_corporation(body.nome, body.sigla))


@router.put("/corporacoes/{corporation_id}")
async def update_corporation(
    corporation_id: int, body: CorporationRequest, service: Structure
) -> dict[str, Any]:
    return corporation_to_dict(
        await service.update_corporation(corporation_id, body.nome, body.sigla)
    )


@router.delete("/corporacoes/{corporation_id}", response_model=MessageResponse)
async def delete_corporation(corporation_id: int, service: Structure) -> MessageResponse:
    await service.delete_corporation(corporation_id)
    return MessageResponse(message="Corporation deleted")


@router.put("/corporacoes/{corporation_id}/permissions")
async def update_corporation_permissions(
    corporation_id: int, body: CorporationPermissionsRequest, service: Structure
) -> dict[str, Any]:
    corp = await service.update_corporation_permissions(corporation_id, body.permissoes)
    return corporation_to_dict(corp)


@router.post("/patentes", status_code=status.HTTP_201_CREATED)
async def create_rank(body: RankRequest, service: Structure) -> dict[str, Any]:
    return rank_to_dict(await service.create_rank(body.nome, body.corporacao_sigla, body.ordem))


@router.put("/patentes/{rank_id}")
async def update_rank(rank_id: int, body: RankRequest, service: Structure) -> dict[str, Any]:
    return rank_to_dict(
        await service.update_rank(rank_id, body.nome, body.corporacao_sigla, body.ordem)
    )


@router.delete("/patentes/{rank_id}", response_model=MessageResponse)
async def delete_rank(rank_id: int, service: Structure) -> MessageResponse:
    await service.delete_rank(rank_id)
    return MessageResponse(message="Rank deleted")


@router.post("/divisoes", status_code=status.HTTP_201_CREATED)
async def create_division(body: DivisionRequest, service: Structure) -> dict[str, Any]:
    return division_to_dict(await service.create_division(body.nome, body.corporacao_sigla))


@router.put("/divisoes/{division_id}")
async def update_division(
    division_id: int, body: DivisionRequest, service: Structure
) -> dict[str, Any]:
    return division_to_dict(
        await service.update_division(division_id, body.nome, body.corporacao_sigla)
    )


@router.delete("/divisoes/{division_id}", response_model=MessageResponse)
async def delete_division(division_id: int, service: Structure) -> MessageResponse:
    await service.delete_division(division_id)
    return MessageResponse(message="Division deleted")
