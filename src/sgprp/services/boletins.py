"""Incident reports (boletins de ocorrencia).

Citizens file reports; officers list and read them. An officer whose
merged permissions include ``podeAssumirBO`` may take responsibility for
an unassigned report, which moves it to investigation, and may then edit
the investigation notes of reports that are unassigned or their own.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update
from sqlalchemy.orm import aliased

from sgprp.db.models import Boletim, BoletimStatus, Civil, Policial
from sgprp.services.errors import (
    ConflictError,
    InvalidInputError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from sgprp.services.permissions import AccountType, Capability

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.services.context import SessionContext

logger = logging.getLogger(__name__)

# Fields an investigating officer may edit besides the status
EDITABLE_BOLETIM_FIELDS = (
    "tipo",
    "unidade_policial",
    "envolvidos_identificados",
    "evidencias_coletadas",
    "relato_policial",
    "encaminhamento",
    "observacoes_internas",
    "mapa_x",
    "mapa_y",
)

DEFAULT_BOLETIM_TYPE = "Outros"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class BoletimService:
    """Files, lists, assigns and edits incident reports."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def register(
        self,
        ctx: SessionContext,
        *,
        tipo: str,
        local: str,
        descricao: str,
        data_ocorrido: datetime,
    ) -> Boletim:
        """File a report on behalf of a citizen.

        Raises:
            PermissionDeniedError: Actor is not a civil account.
        """
        if ctx.account_type is not AccountType.CIVIL:
            raise PermissionDeniedError("Only citizens can file incident reports")

        boletim = Boletim(
            protocolo=f"BO-{int(time.time() * 1000)}-{ctx.account_id}",
            tipo=tipo,
            local=local,
            descricao=descricao,
            data_ocorrido=data_ocorrido,
            status=BoletimStatus.AWAITING_REVIEW,
            usuario_id=ctx.account_id,
            data_registro=datetime.now(UTC),
        )
        self._session.add(boletim)
        await self._session.commit()

        logger.info("Boletim %s filed by civil %d", boletim.protocolo, ctx.account_id)
        return boletim

    async def list_all(self) -> list[dict[str, Any]]:
        """All reports, newest first, with the reporter's name."""
        result = await self._session.execute(
            select(Boletim, Civil.nome_completo, Civil.id_passaporte)
            .outerjoin(Civil, Boletim.usuario_id == Civil.id)
            .order_by(Boletim.data_registro.desc(), Boletim.id.desc())
        )
        return [
            {
                "id": b.id,
                "protocolo": b.protocolo,
                "tipo": b.tipo,
                "descricao": b.descricao,
                "local": b.local,
                "status": b.status.value,
                "data_registro": _iso(b.data_registro),
                "policial_responsavel_id": b.policial_responsavel_id,
                "denunciante_nome": nome,
                "denunciante_passaporte": passaporte,
            }
            for b, nome, passaporte in result.all()
        ]

    async def get(self, boletim_id: int) -> dict[str, Any]:
        """Full report with reporter and responsible officer details.

        Raises:
            ResourceNotFoundError: Unknown report.
        """
        responsavel = aliased(Policial)
        result = await self._session.execute(
            select(Boletim, Civil, responsavel)
            .outerjoin(Civil, Boletim.usuario_id == Civil.id)
            .outerjoin(responsavel, Boletim.policial_responsavel_id == responsavel.id)
            .where(Boletim.id == boletim_id)
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None:
            raise ResourceNotFoundError("Incident report not found")
        boletim, civil, policial = row
        return {
            "id": boletim.id,
            "protocolo": boletim.protocolo,
            "tipo": boletim.tipo,
            "descricao": boletim.descricao,
            "local": boletim.local,
            "status": boletim.status.value,
            "data_ocorrido": _iso(boletim.data_ocorrido),
            "data_registro": _iso(boletim.data_registro),
            "data_assumido": _iso(boletim.data_assumido),
            "mapa_x": boletim.mapa_x,
            "mapa_y": boletim.mapa_y,
            "unidade_policial": boletim.unidade_policial,
            "envolvidos_identificados": boletim.envolvidos_identificados,
            "evidencias_coletadas": boletim.evidencias_coletadas,
            "relato_policial": boletim.relato_policial,
            "encaminhamento": boletim.encaminhamento,
            "observacoes_internas": boletim.observacoes_internas,
            "policial_responsavel_id": boletim.policial_responsavel_id,
            "denunciante_nome": civil.nome_completo if civil else None,
            "denunciante_passaporte": civil.id_passaporte if civil else None,
            "denunciante_gmail": civil.gmail if civil else None,
            "denunciante_telefone": civil.telefone_rp if civil else None,
            "policial_responsavel_nome": policial.nome_completo if policial else None,
            "policial_responsavel_passaporte": policial.passaporte if policial else None,
        }

    async def assume(self, ctx: SessionContext, boletim_id: int) -> None:
        """Take responsibility for an unassigned report.

        The assignment is a conditional update, so two officers racing for
        the same report cannot both win.

        Raises:
            PermissionDeniedError: Actor lacks ``podeAssumirBO``.
            ConflictError: Report already assumed.
            ResourceNotFoundError: Unknown report.
        """
        ctx.gate.require(
            Capability.PODE_ASSUMIR_BO, "Your corporation cannot take incident reports"
        )

        result = await self._session.execute(
            update(Boletim)
            .where(Boletim.id == boletim_id, Boletim.policial_responsavel_id.is_(None))
            .values(
                status=BoletimStatus.INVESTIGATING,
                policial_responsavel_id=ctx.account_id,
                data_assumido=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._session.rollback()
            exists = await self._session.execute(
                select(Boletim.policial_responsavel_id).where(Boletim.id == boletim_id)
            )
            if exists.first() is not None:
                raise ConflictError("This case was already assumed by another officer")
            raise ResourceNotFoundError("Incident report not found")

        await self._session.commit()
        logger.info("Boletim %d assumed by officer %d", boletim_id, ctx.account_id)

    async def update(
        self,
        ctx: SessionContext,
        boletim_id: int,
        status: BoletimStatus,
        changes: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Edit the status and investigation notes of a report.

        Only fields present in ``changes`` are written. Moving an
        unassigned report to investigation makes the caller responsible
        for it, as :meth:`assume` would.

        Args:
            ctx: Acting officer.
            boletim_id: Report to edit.
            status: New workflow status.
            changes: Subset of ``EDITABLE_BOLETIM_FIELDS``.

        Returns:
            The updated report, as returned by :meth:`get`.

        Raises:
            PermissionDeniedError: Actor lacks ``podeAssumirBO``, or another
                officer is responsible for the report.
            InvalidInputError: Map coordinates are not finite numbers.
            ConflictError: Another officer took the report meanwhile.
            ResourceNotFoundError: Unknown report.
        """
        ctx.gate.require(
            Capability.PODE_ASSUMIR_BO, "Your corporation cannot edit incident reports"
        )

        result = await self._session.execute(
            select(Boletim.policial_responsavel_id)
            .where(Boletim.id == boletim_id)
            .with_for_update()
        )
        row = result.first()
        if row is None:
            await self._session.rollback()
            raise ResourceNotFoundError("Incident report not found")
        responsavel_id = row.policial_responsavel_id
        if responsavel_id is not None and responsavel_id != ctx.account_id:
            await self._session.rollback()
            raise PermissionDeniedError("Another officer is responsible for this case")

        values: dict[str, Any] = {
            name: changes[name] for name in EDITABLE_BOLETIM_FIELDS if name in changes
        }
        for coordinate in ("mapa_x", "mapa_y"):
            value = values.get(coordinate)
            if value is not None and not math.isfinite(value):
                await self._session.rollback()
                raise InvalidInputError("Invalid map coordinates")
        if "tipo" in values and not values["tipo"]:
            values["tipo"] = DEFAULT_BOLETIM_TYPE
        values["status"] = status

        if responsavel_id is None:
            owner_unchanged = Boletim.policial_responsavel_id.is_(None)
            if status is BoletimStatus.INVESTIGATING:
                values["policial_responsavel_id"] = ctx.account_id
                values["data_assumido"] = datetime.now(UTC)
        else:
            owner_unchanged = Boletim.policial_responsavel_id == responsavel_id

        updated = await self._session.execute(
            update(Boletim)
            .where(Boletim.id == boletim_id, owner_unchanged)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount != 1:
            await self._session.rollback()
            raise ConflictError("This case was assumed by another officer")

        await self._session.commit()
        logger.info(
            "Boletim %d updated by officer %d (status %s)",
            boletim_id,
            ctx.account_id,
            status.value,
        )
        return await self.get(boletim_id)
