"""Officer roster, profiles and career history."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from sgprp.db.models import Policial, PolicialHistory, PolicialStatus
from sgprp.services.errors import (
    ConflictError,
    InvalidInputError,
    PermissionDeniedError,
    ResourceNotFoundError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.services.context import SessionContext

logger = logging.getLogger(__name__)


def profile_to_dict(policial: Policial) -> dict[str, Any]:
    return {
        "id": policial.id,
        "nome_completo": policial.nome_completo,
        "passaporte": policial.passaporte,
        "discord_id": policial.discord_id,
        "telefone_rp": policial.telefone_rp,
        "gmail": policial.gmail,
        "status": policial.status.value,
        "corporacao": policial.corporacao,
        "patente": policial.patente,
        "divisao": policial.divisao,
        "foto_url": policial.foto_url,
        "created_at": policial.created_at.isoformat() if policial.created_at else None,
    }


class RosterService:
    """Read access to officer records, limited to the actor's corporation."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_officers(self, ctx: SessionContext) -> list[dict[str, Any]]:
        """Approved officers visible to the actor.

        Actors with global scope see every corporation; everyone else sees
        their own corporation only, and nothing when they have none.
        """
        stmt = select(Policial).where(Policial.status == PolicialStatus.APPROVED)
        if not ctx.gate.has_global_scope:
            if ctx.corporacao is None:
                return []
            stmt = stmt.where(Policial.corporacao == ctx.corporacao)
        result = await self._session.execute(
            stmt.order_by(Policial.corporacao, Policial.nome_completo)
        )
        return [
            {
                "id": p.id,
                "nome_completo": p.nome_completo,
                "passaporte": p.passaporte,
                "patente": p.patente,
                "corporacao": p.corporacao,
                "divisao": p.divisao,
                "status": p.status.value,
            }
            for p in result.scalars().all()
        ]

    async def update_self(
        self, ctx: SessionContext, *, nome_completo: str, gmail: str
    ) -> dict[str, Any]:
        """Change the acting officer's display name and email.

        Raises:
            InvalidInputError: Blank name or email.
            ConflictError: Email already used by another officer.
            ResourceNotFoundError: The account no longer exists.
        """
        nome_completo = nome_completo.strip()
        gmail = gmail.strip()
        if not nome_completo or not gmail:
            raise InvalidInputError("Name and email are required")

        taken = await self._session.execute(
            select(Policial.id).where(
                func.lower(Policial.gmail) == gmail.lower(), Policial.id != ctx.account_id
            )
        )
        if taken.first() is not None:
            raise ConflictError("Email already registered", detail={"field": "Email"})

        policial = await self._session.get(Policial, ctx.account_id)
        if policial is None:
            raise ResourceNotFoundError("Officer not found")
        policial.nome_completo = nome_completo
        policial.gmail = gmail
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise ConflictError("Email already registered", detail={"field": "Email"}) from e

        logger.info("Officer %d updated their profile", ctx.account_id)
        return profile_to_dict(policial)

    async def get_profile(self, ctx: SessionContext, policial_id: int) -> dict[str, Any]:
        """Profile of an officer.

        Raises:
            ResourceNotFoundError: Unknown officer.
            PermissionDeniedError: Officer of another corporation.
        """
        policial = await self._load(ctx, policial_id)
        return profile_to_dict(policial)

    async def get_history(self, ctx: SessionContext, policial_id: int) -> list[dict[str, Any]]:
        """Career history of an officer, newest first."""
        await self._load(ctx, policial_id)
        responsavel = aliased(Policial)
        result = await self._session.execute(
            select(PolicialHistory, responsavel.nome_completo)
            .outerjoin(responsavel, PolicialHistory.responsavel_id == responsavel.id)
            .where(PolicialHistory.policial_id == policial_id)
            .order_by(PolicialHistory.data_evento.desc(), PolicialHistory.id.desc())
        )
        return [
            {
                "id": h.id,
                "tipo_evento": h.tipo_evento,
                "descricao": h.descricao,
                "data_evento": h.data_evento.isoformat() if h.data_evento else None,
                "responsavel_nome": responsavel_nome,
            }
            for h, responsavel_nome in result.all()
        ]

    async def _load(self, ctx: SessionContext, policial_id: int) -> Policial:
        policial = await self._session.get(Policial, policial_id)
        if policial is None:
            raise ResourceNotFoundError("Officer not found")
        gate = ctx.gate
        if not (gate.has_global_scope or policial.corporacao == ctx.corporacao):
            raise PermissionDeniedError("You cannot view officers of another corporation")
        return policial
