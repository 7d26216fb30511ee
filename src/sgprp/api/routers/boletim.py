"""Citizen incident report router."""

from __future__ import annotations

from fastapi import APIRouter, status

from sgprp.api.middleware.auth import CivilSession, DbSession
from sgprp.api.schemas.policia import BoletimCreatedResponse, BoletimRegisterRequest
from sgprp.services.boletins import BoletimService

router = APIRouter(prefix="/boletim", tags=["boletim"])


@router.post(
    "/registrar",
    status_code=status.HTTP_201_CREATED,
    response_model=BoletimCreatedResponse,
)
async def register_boletim(
    body: BoletimRegisterRequest, ctx: CivilSession, db: DbSession
) -> BoletimCreatedResponse:
    """File an incident report and return its protocol number."""
    boletim = await BoletimService(db).register(
        ctx,
        tipo=body.tipo,
        local=body.local,
        descricao=body.descricao,
        data_ocorrido=body.data_ocorrido,
    )
    return BoletimCreatedResponse(
        message="Incident report filed", id=boletim.id, protocolo=boletim.protocolo
    )
