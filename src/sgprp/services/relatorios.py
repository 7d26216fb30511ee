"""Police reports (relatorios) written by officers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sgprp.db.models import Boletim, Relatorio
from sgprp.services.errors import InvalidInputError, PermissionDeniedError
from sgprp.services.permissions import AccountType

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.services.context import SessionContext

logger = logging.getLogger(__name__)

# Optional free-form details of a report
RELATORIO_DETAIL_FIELDS = (
    "unidade_responsavel",
    "local_ocorrencia",
    "data_hora_fato",
    "natureza_ocorrencia",
    "testemunhas",
    "suspeitos",
    "vitimas",
    "veiculos_envolvidos",
    "objetos_apreendidos",
    "medidas_tomadas",
    "observacoes_autor",
    "mapa_x",
    "mapa_y",
)

DEFAULT_RELATORIO_STATUS = "Em Aberto"


class RelatorioService:
    """Files police reports on behalf of the acting officer."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        ctx: SessionContext,
        *,
        tipo_relatorio: str,
        descricao_detalhada: str,
        status: str | None = None,
        id_ocorrencia_associada: int | None = None,
        **details: Any,
    ) -> Relatorio:
        """Store a report authored by the acting officer.

        Args:
            ctx: Acting officer.
            tipo_relatorio: Report type.
            descricao_detalhada: Body of the report.
            status: Initial status, ``Em Aberto`` when omitted.
            id_ocorrencia_associada: Optional boletim the report refers to.
            **details: Any of ``RELATORIO_DETAIL_FIELDS``.

        Raises:
            PermissionDeniedError: Actor is not an officer.
            InvalidInputError: Blank required field, unknown detail, or the
                associated boletim does not exist.
        """
        if ctx.account_type is not AccountType.POLICIAL:
            raise PermissionDeniedError("Only officers can file police reports")
        if not tipo_relatorio.strip() or not descricao_detalhada.strip():
            raise InvalidInputError("Report type and description are required")
        unknown = set(details) - set(RELATORIO_DETAIL_FIELDS)
        if unknown:
            raise InvalidInputError(f"Unknown report fields: {', '.join(sorted(unknown))}")

        if id_ocorrencia_associada is not None:
            boletim = await self._session.get(Boletim, id_ocorrencia_associada)
            if boletim is None:
                raise InvalidInputError("Associated incident report does not exist")

        relatorio = Relatorio(
            tipo_relatorio=tipo_relatorio.strip(),
            descricao_detalhada=descricao_detalhada,
            status=status or DEFAULT_RELATORIO_STATUS,
            id_ocorrencia_associada=id_ocorrencia_associada,
            id_policial_autor=ctx.account_id,
            data_criacao=datetime.now(UTC),
            **details,
        )
        self._session.add(relatorio)
        await self._session.commit()

        logger.info("Relatorio %d filed by officer %d", relatorio.id, ctx.account_id)
        return relatorio
