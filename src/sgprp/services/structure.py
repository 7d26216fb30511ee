"""Organisational structure: corporations, ranks and divisions.

All mutations are staff actions and go through the audited admin
pipeline. Reading the structure is open to RH as well, since RH needs
the rank and division lists of its corporation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from sgprp.db.models import Corporation, Division, Policial, Rank
from sgprp.services.admin_actions import AdminPipeline
from sgprp.services.audit_log import ActionKind
from sgprp.services.errors import ConflictError, InvalidInputError, ResourceNotFoundError
from sgprp.services.permissions import Capability

if TYPE_CHECKING:
    from sgprp.db.models import Base

logger = logging.getLogger(__name__)


def corporation_to_dict(corp: Corporation) -> dict[str, Any]:
    return {
        "id": corp.id,
        "nome": corp.nome,
        "sigla": corp.sigla,
        "permissoes": dict(corp.permissoes or {}),
    }


def rank_to_dict(rank: Rank) -> dict[str, Any]:
    return {
        "id": rank.id,
        "nome": rank.nome,
        "corporacao_sigla": rank.corporacao_sigla,
        "ordem": rank.ordem,
    }


def division_to_dict(division: Division) -> dict[str, Any]:
    return {"id": division.id, "nome": division.nome, "corporacao_sigla": division.corporacao_sigla}


class StructureService(AdminPipeline):
    """CRUD over corporations, ranks and divisions."""

    async def get_structure(self) -> dict[str, list[dict[str, Any]]]:
        """All corporations, ranks (by corporation and order) and divisions."""
        self._require_admin()
        corps = await self._session.execute(select(Corporation).order_by(Corporation.nome))
        ranks = await self._session.execute(
            select(Rank).order_by(Rank.corporacao_sigla, Rank.ordem)
        )
        divisions = await self._session.execute(
            select(Division).order_by(Division.corporacao_sigla, Division.nome)
        )
        return {
            "corporacoes": [corporation_to_dict(c) for c in corps.scalars()],
            "patentes": [rank_to_dict(r) for r in ranks.scalars()],
            "divisoes": [division_to_dict(d) for d in divisions.scalars()],
        }

    # ------------------------------------------------------------------
    # Corporations
    # ------------------------------------------------------------------

    async def create_corporation(self, nome: str, sigla: str) -> Corporation:
        """Create a corporation. The sigla is stored upper-cased.

        Raises:
            ConflictError: Sigla already exists.
        """
        self._require_staff()
        sigla = self._normalize_sigla(sigla)

        async with self._unit_of_work():
            await self._require_free_sigla(sigla)
            corp = Corporation(nome=nome, sigla=sigla, permissoes={})
            self._session.add(corp)
            await self._session.flush()
            await self._audit(
                ActionKind.CREATE_CORPORATION,
                {"corporacaoId": corp.id, "nome": nome, "sigla": sigla},
                corporacao=sigla,
            )

        logger.info("Corporation %s created", sigla)
        return corp

    async def update_corporation(self, corporation_id: int, nome: str, sigla: str) -> Corporation:
        """Rename a corporation or change its sigla."""
        self._require_staff()
        sigla = self._normalize_sigla(sigla)

        async with self._unit_of_work():
            corp = await self._get(Corporation, corporation_id, "Corporation not found")
            if sigla != corp.sigla:
                await self._require_free_sigla(sigla)
            previous = corp.sigla
            corp.nome = nome
            corp.sigla = sigla
            await self._audit(
                ActionKind.UPDATE_CORPORATION,
                {"corporacaoId": corp.id, "nome": nome, "sigla": sigla, "previousSigla": previous},
                corporacao=sigla,
            )
        return corp

    async def delete_corporation(self, corporation_id: int) -> None:
        """Delete a corporation that no officer, rank or division references.

        Raises:
            ConflictError: The corporation is still in use.
        """
        self._require_staff()
        async with self._unit_of_work():
            corp = await self._get(Corporation, corporation_id, "Corporation not found")
            for model, column in (
                (Policial, Policial.corporacao),
                (Rank, Rank.corporacao_sigla),
                (Division, Division.corporacao_sigla),
            ):
                in_use = await self._session.execute(
                    select(func.count()).select_from(model).where(column == corp.sigla)
                )
                if in_use.scalar_one():
                    raise ConflictError(f"Corporation {corp.sigla} is still in use")
            await self._session.delete(corp)
            await self._audit(
                ActionKind.DELETE_CORPORATION,
                {"corporacaoId": corporation_id, "sigla": corp.sigla},
                corporacao=corp.sigla,
            )

    async def update_corporation_permissions(
        self, corporation_id: int, permissoes: dict[str, Any]
    ) -> Corporation:
        """Replace a corporation's capability flags.

        Raises:
            InvalidInputError: Unknown flag or non-boolean value.
        """
        self._require_staff()
        for key, value in permissoes.items():
            try:
                Capability(key)
            except ValueError:
                raise InvalidInputError(f"Unknown permission flag: {key}") from None
            if not isinstance(value, bool):
                raise InvalidInputError(f"Permission flag {key} must be a boolean")

        async with self._unit_of_work():
            corp = await self._get(Corporation, corporation_id, "Corporation not found")
            previous = dict(corp.permissoes or {})
            corp.permissoes = dict(permissoes)
            await self._audit(
                ActionKind.UPDATE_CORPORATION_PERMISSIONS,
                {"corp": corp.sigla, "previous": previous, "permissoes": dict(permissoes)},
                corporacao=corp.sigla,
            )
        return corp

    # ------------------------------------------------------------------
    # Ranks
    # ------------------------------------------------------------------

    async def create_rank(self, nome: str, corporacao_sigla: str, ordem: int = 0) -> Rank:
        self._require_staff()
        async with self._unit_of_work():
            await self._require_corporation(corporacao_sigla)
            rank = Rank(nome=nome, corporacao_sigla=corporacao_sigla, ordem=ordem)
            self._session.add(rank)
            await self._session.flush()
            await self._audit(
                ActionKind.CREATE_RANK,
                rank_to_dict(rank),
                corporacao=corporacao_sigla,
            )
        return rank

    async def update_rank(
        self, rank_id: int, nome: str, corporacao_sigla: str, ordem: int = 0
    ) -> Rank:
        self._require_staff()
        async with self._unit_of_work():
            rank = await self._get(Rank, rank_id, "Rank not found")
            await self._require_corporation(corporacao_sigla)
            rank.nome = nome
            rank.corporacao_sigla = corporacao_sigla
            rank.ordem = ordem
            await self._audit(ActionKind.UPDATE_RANK, rank_to_dict(rank), corporacao=corporacao_sigla)
        return rank

    async def delete_rank(self, rank_id: int) -> None:
        self._require_staff()
        async with self._unit_of_work():
            rank = await self._get(Rank, rank_id, "Rank not found")
            details = rank_to_dict(rank)
            await self._session.delete(rank)
            await self._audit(ActionKind.DELETE_RANK, details, corporacao=rank.corporacao_sigla)

    # ------------------------------------------------------------------
    # Divisions
    # ------------------------------------------------------------------

    async def create_division(self, nome: str, corporacao_sigla: str) -> Division:
        self._require_staff()
        async with self._unit_of_work():
            await self._require_corporation(corporacao_sigla)
            division = Division(nome=nome, corporacao_sigla=corporacao_sigla)
            self._session.add(division)
            await self._session.flush()
            await self._audit(
                ActionKind.CREATE_DIVISION,
                division_to_dict(division),
                corporacao=corporacao_sigla,
            )
        return division

    async def update_division(self, division_id: int, nome: str, corporacao_sigla: str) -> Division:
        self._require_staff()
        async with self._unit_of_work():
            division = await self._get(Division, division_id, "Division not found")
            await self._require_corporation(corporacao_sigla)
            division.nome = nome
            division.corporacao_sigla = corporacao_sigla
            await self._audit(
                ActionKind.UPDATE_DIVISION,
                division_to_dict(division),
                corporacao=corporacao_sigla,
            )
        return division

    async def delete_division(self, division_id: int) -> None:
        self._require_staff()
        async with self._unit_of_work():
            division = await self._get(Division, division_id, "Division not found")
            details = division_to_dict(division)
            await self._session.delete(division)
            await self._audit(
                ActionKind.DELETE_DIVISION, details, corporacao=division.corporacao_sigla
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_sigla(sigla: str) -> str:
        sigla = (sigla or "").strip().upper()
        if not sigla:
            raise InvalidInputError("Sigla is required")
        return sigla

    async def _require_free_sigla(self, sigla: str) -> None:
        if await self._corporation_exists(sigla):
            raise ConflictError("Sigla already exists", detail={"sigla": sigla})

    async def _require_corporation(self, sigla: str) -> None:
        if not await self._corporation_exists(sigla):
            raise InvalidInputError(f"Unknown corporation: {sigla}")

    async def _get(self, model: type[Base], pk: int, message: str) -> Any:
        instance = await self._session.get(model, pk)
        if instance is None:
            raise ResourceNotFoundError(message)
        return instance
