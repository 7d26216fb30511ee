"""Permission-gated administrative action pipeline.

Every mutating administrative action follows the same steps:

1. Authorize: the permission gate runs before anything is read for
   mutation or written. A denial raises PermissionDeniedError.
2. Mutate: the change is applied to the session.
3. Audit: exactly one audit record is appended to the same session.
4. Commit: the mutation and its audit record commit together. Any error
   in steps 2-4 rolls back both, so failed attempts leave no trace.

Covers the RH panel (recruits, careers, dismissals, data updates,
registration tokens, announcements, concursos, changelog) and the staff
actions that are not about the organisational structure (global tokens,
user search, portal settings). Structure CRUD lives in
``sgprp.services.structure`` and reuses AdminPipeline.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value

from sgprp.db.models import (
    Announcement,
    ChangelogEntry,
    Civil,
    Concurso,
    Corporation,
    Division,
    Policial,
    PolicialHistory,
    PolicialStatus,
    PortalSetting,
    Rank,
    RegistrationToken,
)
from sgprp.services.audit_log import ActionKind, AuditLogEntry, AuditLogService
from sgprp.services.errors import (
    ConflictError,
    InvalidInputError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from sgprp.services.permissions import (
    ADMIN_PANEL_CAPABILITIES,
    GENERAL_CORPORATION,
    STAFF_PANEL_CAPABILITIES,
)
from sgprp.services.tokens import generate_registration_token, token_prefix

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql.elements import ColumnElement

    from sgprp.core.config import Settings
    from sgprp.services.context import SessionContext

logger = logging.getLogger(__name__)

CAREER_ACTIONS = {"Promoção": "Promovido", "Rebaixamento": "Rebaixado"}
REVIEW_STATUSES = {PolicialStatus.APPROVED.value, PolicialStatus.REJECTED.value}
MIN_BUG_REPORT_LENGTH = 10
SEARCH_LIMIT = 10
STAFF_SEARCH_LIMIT = 50
STAFF_SEARCH_TYPES = {"Todos", "Policial", "Civil"}

# Fields an RH may edit on a policial, in diff order
EDITABLE_POLICIAL_FIELDS = (
    "nome_completo",
    "passaporte",
    "discord_id",
    "telefone_rp",
    "patente",
    "divisao",
)
REQUIRED_POLICIAL_FIELDS = ("nome_completo", "passaporte", "patente", "divisao")


@dataclass(frozen=True, slots=True)
class IssuedRegistrationToken:
    """A newly created registration token.

    The token value is returned to the issuing admin once and never logged.
    """

    token: str
    corporacao: str
    max_uses: int
    duration_hours: int
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    """Result of an administrative action.

    Attributes:
        changed: False when the action was a no-op and nothing was audited.
        target_id: Id of the affected entity.
        audit: The audit entry written, if any.
        data: Action specific values for the response.
    """

    changed: bool
    target_id: int | None = None
    audit: AuditLogEntry | None = None
    data: dict[str, Any] = field(default_factory=dict)


def normalize_corporation(value: str | None) -> str | None:
    """Map the "general" markers (None, "", "GERAL") to None."""
    if value is None:
        return None
    value = value.strip()
    if not value or value.upper() == GENERAL_CORPORATION:
        return None
    return value


class AdminPipeline:
    """Base for services that run authorized, audited mutations.

    Subclasses wrap each action in ``_unit_of_work`` and call ``_audit``
    once the mutation has been applied.
    """

    def __init__(self, session: AsyncSession, ctx: SessionContext) -> None:
        self._session = session
        self._ctx = ctx
        self._gate = ctx.gate
        self._audit_log = AuditLogService(session)

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        """Commit on success, roll everything back on any error."""
        try:
            yield
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise ConflictError("Value conflicts with an existing record") from e
        except Exception:
            await self._session.rollback()
            raise

    async def _audit(
        self,
        kind: ActionKind,
        details: dict[str, Any],
        corporacao: str | None = None,
    ) -> AuditLogEntry:
        return await self._audit_log.append(
            kind=kind,
            actor_id=self._ctx.account_id,
            details=details,
            corporacao=corporacao,
            ip_address=self._ctx.ip_address,
        )

    def _require_admin(self) -> None:
        self._gate.require_any(
            ADMIN_PANEL_CAPABILITIES, "Access restricted to RH, staff or developers"
        )

    def _require_staff(self) -> None:
        self._gate.require_any(STAFF_PANEL_CAPABILITIES, "Access restricted to city staff")

    def _scope_filter(self, column: ColumnElement[Any]) -> ColumnElement[bool] | None:
        """Corporation filter for listings, None when unrestricted."""
        scope = self._gate.scope_corporation()
        if scope is None:
            return None
        return or_(column == scope, column.is_(None))

    async def _corporation_exists(self, sigla: str) -> bool:
        result = await self._session.execute(
            select(Corporation.id).where(Corporation.sigla == sigla)
        )
        return result.first() is not None

    def _history(self, policial_id: int, tipo_evento: str, descricao: str) -> None:
        self._session.add(
            PolicialHistory(
                policial_id=policial_id,
                tipo_evento=tipo_evento,
                descricao=descricao,
                data_evento=datetime.now(UTC),
                responsavel_id=self._ctx.account_id,
            )
        )


class AdminActionService(AdminPipeline):
    """RH and staff panel actions on personnel and portal content.

    Example:
        service = AdminActionService(session, ctx)
        outcome = await service.dismiss(policial_id=7)
    """

    def __init__(
        self,
        session: AsyncSession,
        ctx: SessionContext,
        *,
        default_max_uses: int = 1,
        default_duration_hours: int = 24,
        max_uses_limit: int = 100,
        max_duration_hours: int = 720,
    ) -> None:
        super().__init__(session, ctx)
        self._default_max_uses = default_max_uses
        self._default_duration_hours = default_duration_hours
        self._max_uses_limit = max_uses_limit
        self._max_duration_hours = max_duration_hours

    @classmethod
    def from_settings(
        cls, session: AsyncSession, ctx: SessionContext, settings: Settings
    ) -> AdminActionService:
        return cls(
            session,
            ctx,
            default_max_uses=settings.registration.default_max_uses,
            default_duration_hours=settings.registration.default_duration_hours,
            max_uses_limit=settings.registration.max_uses_limit,
            max_duration_hours=settings.registration.max_duration_hours,
        )

    # ------------------------------------------------------------------
    # Registration tokens
    # ------------------------------------------------------------------

    async def generate_registration_token(
        self,
        *,
        max_uses: int | None = None,
        duration_hours: int | None = None,
        corporacao: str | None = None,
        global_token: bool = False,
    ) -> IssuedRegistrationToken:
        """Create a corporation-scoped registration token.

        Args:
            max_uses: Number of registrations the token allows. Defaults to
                the configured default.
            duration_hours: Validity window. Defaults to the configured
                default.
            corporacao: Target corporation. Defaults to the actor's own for
                RH tokens; required for global (staff) tokens.
            global_token: Issue through the staff panel.

        Raises:
            PermissionDeniedError: Missing capability, or an RH targeting
                another corporation.
            InvalidInputError: Bad limits, or no/unknown corporation.
        """
        if global_token:
            self._require_staff()
        else:
            self._require_admin()

        if max_uses is None:
            max_uses = self._default_max_uses
        if duration_hours is None:
            duration_hours = self._default_duration_hours
        if not 1 <= max_uses <= self._max_uses_limit:
            raise InvalidInputError(f"max_uses must be between 1 and {self._max_uses_limit}")
        if not 1 <= duration_hours <= self._max_duration_hours:
            raise InvalidInputError(
                f"duration_hours must be between 1 and {self._max_duration_hours}"
            )

        target = normalize_corporation(corporacao)
        if global_token and target is None:
            raise InvalidInputError("Corporation is required for a global token")
        if target is None:
            target = self._ctx.corporacao
        if target is None:
            raise InvalidInputError("Corporation for the token is not defined")
        self._gate.require_corporation_access(target)

        token = generate_registration_token()
        expires_at = datetime.now(UTC) + timedelta(hours=duration_hours)
        kind = (
            ActionKind.GENERATE_GLOBAL_TOKEN
            if global_token
            else ActionKind.GENERATE_REGISTRATION_TOKEN
        )

        async with self._unit_of_work():
            if not await self._corporation_exists(target):
                raise InvalidInputError(f"Unknown corporation: {target}")
            self._session.add(
                RegistrationToken(
                    token=token,
                    corporacao=target,
                    created_by=self._ctx.account_id,
                    max_uses=max_uses,
                    use_count=0,
                    expires_at=expires_at,
                    is_active=True,
                )
            )
            details: dict[str, Any] = {
                "uses": max_uses,
                "duration": duration_hours,
                "corp": target,
                "tokenStart": token_prefix(token),
            }
            if global_token:
                details["generatedBy"] = "Staff"
            await self._audit(kind, details, corporacao=target)

        logger.info(
            "Registration token %s... issued for %s by %d",
            token_prefix(token),
            target,
            self._ctx.account_id,
        )
        return IssuedRegistrationToken(
            token=token,
            corporacao=target,
            max_uses=max_uses,
            duration_hours=duration_hours,
            expires_at=expires_at,
        )

    # ------------------------------------------------------------------
    # Personnel
    # ------------------------------------------------------------------

    async def list_recruits(self) -> list[Policial]:
        """Pending recruits within the actor's scope, oldest first."""
        self._require_admin()
        query = select(Policial).where(Policial.status == PolicialStatus.PENDING)
        scope = self._scope_filter(Policial.corporacao)
        if scope is not None:
            query = query.where(scope)
        result = await self._session.execute(query.order_by(Policial.id))
        return list(result.scalars().all())

    async def list_officers(self) -> list[Policial]:
        """Approved officers within the actor's scope, by name."""
        self._require_admin()
        query = select(Policial).where(Policial.status == PolicialStatus.APPROVED)
        scope = self._scope_filter(Policial.corporacao)
        if scope is not None:
            query = query.where(scope)
        result = await self._session.execute(query.order_by(Policial.nome_completo))
        return list(result.scalars().all())

    async def search_policiais(self, query: str | None) -> list[Policial]:
        """Search approved officers in scope by name or passport."""
        self._require_admin()
        if not query or not query.strip():
            return []
        pattern = f"%{query.strip()}%"
        stmt = select(Policial).where(
            Policial.status == PolicialStatus.APPROVED,
            or_(Policial.nome_completo.ilike(pattern), Policial.passaporte.ilike(pattern)),
        )
        scope = self._scope_filter(Policial.corporacao)
        if scope is not None:
            stmt = stmt.where(scope)
        result = await self._session.execute(stmt.order_by(Policial.nome_completo).limit(SEARCH_LIMIT))
        return list(result.scalars().all())

    async def review_recruit(
        self,
        recruit_id: int,
        novo_status: str,
        *,
        divisao: str | None = None,
        patente: str | None = None,
    ) -> ActionOutcome:
        """Approve or reject a pending recruit.

        Raises:
            InvalidInputError: Unknown status, or approval without a valid
                rank and division of the recruit's corporation.
            ResourceNotFoundError: No pending recruit with that id.
            PermissionDeniedError: Recruit outside the actor's scope.
        """
        self._require_admin()
        if novo_status not in REVIEW_STATUSES:
            raise InvalidInputError("novoStatus must be 'Aprovado' or 'Reprovado'")
        status = PolicialStatus(novo_status)

        async with self._unit_of_work():
            result = await self._session.execute(
                select(Policial)
                .where(Policial.id == recruit_id, Policial.status == PolicialStatus.PENDING)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            recruit = result.scalar_one_or_none()
            if recruit is None:
                raise ResourceNotFoundError("Recruit not found or already processed")
            self._gate.require_corporation_access(recruit.corporacao)

            details: dict[str, Any] = {
                "targetUserId": recruit.id,
                "targetName": recruit.nome_completo,
                "newStatus": status.value,
                "adminId": self._ctx.account_id,
            }
            if status is PolicialStatus.APPROVED:
                if not divisao or not patente:
                    raise InvalidInputError("Division and rank are required for approval")
                await self._require_rank(recruit.corporacao, patente)
                await self._require_division(recruit.corporacao, divisao)
            else:
                divisao = patente = None

            if not await self._transition(
                recruit, PolicialStatus.PENDING, status=status, patente=patente, divisao=divisao
            ):
                raise ResourceNotFoundError("Recruit not found or already processed")

            if status is PolicialStatus.APPROVED:
                self._history(
                    recruit.id,
                    "Aprovação",
                    f"Aprovado por {self._ctx.nome_completo}. Corporação: {recruit.corporacao}, "
                    f"Divisão: {divisao}, Patente Inicial: {patente}.",
                )
                details.update({"division": divisao, "rank": patente})
                kind = ActionKind.APPROVE_RECRUIT
            else:
                self._history(recruit.id, "Reprovação", f"Reprovado por {self._ctx.nome_completo}.")
                kind = ActionKind.REJECT_RECRUIT

            entry = await self._audit(kind, details, corporacao=recruit.corporacao)

        logger.info("Recruit %d %s by %d", recruit.id, status.value, self._ctx.account_id)
        return ActionOutcome(changed=True, target_id=recruit.id, audit=entry)

    async def manage_career(self, policial_id: int, acao: str, nova_patente: str) -> ActionOutcome:
        """Promote or demote an approved officer.

        Raises:
            InvalidInputError: Unknown action, inactive target or rank not
                in the target's corporation.
            ResourceNotFoundError: Unknown officer.
            PermissionDeniedError: Officer outside the actor's scope.
        """
        self._require_admin()
        if acao not in CAREER_ACTIONS:
            raise InvalidInputError("acao must be 'Promoção' or 'Rebaixamento'")
        if not nova_patente:
            raise InvalidInputError("novaPatente is required")

        async with self._unit_of_work():
            target = await self._get_policial(policial_id)
            self._gate.require_corporation_access(target.corporacao)
            if target.status is not PolicialStatus.APPROVED:
                raise InvalidInputError("Only active officers can be promoted or demoted")
            await self._require_rank(target.corporacao, nova_patente)

            previous = target.patente
            target.patente = nova_patente
            self._history(
                target.id,
                acao,
                f"{CAREER_ACTIONS[acao]} para {nova_patente} por {self._ctx.nome_completo}.",
            )
            entry = await self._audit(
                ActionKind.MANAGE_CAREER,
                {
                    "targetUserId": target.id,
                    "targetName": target.nome_completo,
                    "action": acao,
                    "previousRank": previous,
                    "newRank": nova_patente,
                    "adminId": self._ctx.account_id,
                },
                corporacao=target.corporacao,
            )

        logger.info("Officer %d: %s to %s", target.id, acao, nova_patente)
        return ActionOutcome(changed=True, target_id=target.id, audit=entry)

    async def dismiss(self, policial_id: int) -> ActionOutcome:
        """Dismiss an officer: status REJECTED, rank and division cleared.

        Dismissing an already dismissed officer is a no-op and writes no
        audit record. The account row is never deleted.

        Raises:
            InvalidInputError: Actor targets themselves.
            ResourceNotFoundError: Unknown officer.
            PermissionDeniedError: Officer outside the actor's scope.
        """
        self._require_admin()
        if policial_id == self._ctx.account_id:
            raise InvalidInputError("You cannot dismiss yourself")

        async with self._unit_of_work():
            target = await self._get_policial(policial_id)
            self._gate.require_corporation_access(target.corporacao)
            if target.status is PolicialStatus.REJECTED:
                logger.debug("Officer %d already dismissed", target.id)
                return ActionOutcome(
                    changed=False, target_id=target.id, data={"nome_completo": target.nome_completo}
                )

            if not await self._transition(
                target, target.status, status=PolicialStatus.REJECTED, patente=None, divisao=None
            ):
                logger.debug("Officer %d was dismissed concurrently", target.id)
                return ActionOutcome(
                    changed=False, target_id=target.id, data={"nome_completo": target.nome_completo}
                )
            self._history(
                target.id,
                "Demissão",
                f"Demitido por {self._ctx.nome_completo}. Status alterado para Reprovado.",
            )
            entry = await self._audit(
                ActionKind.DISMISS_POLICIAL,
                {
                    "targetUserId": target.id,
                    "targetName": target.nome_completo,
                    "adminId": self._ctx.account_id,
                },
                corporacao=target.corporacao,
            )

        logger.info("Officer %d dismissed by %d", target.id, self._ctx.account_id)
        return ActionOutcome(
            changed=True,
            target_id=target.id,
            audit=entry,
            data={"nome_completo": target.nome_completo},
        )

    async def update_policial(self, policial_id: int, fields: dict[str, Any]) -> ActionOutcome:
        """Edit an officer's general data.

        Only fields that differ from the stored values are written. When
        nothing differs the call is a no-op without an audit record.

        Raises:
            InvalidInputError: Required field missing, or rank/division not
                in the officer's corporation.
            ResourceNotFoundError: Unknown officer.
            PermissionDeniedError: Officer outside the actor's scope.
            ConflictError: Passport or Discord id already in use.
        """
        self._require_admin()
        missing = [name for name in REQUIRED_POLICIAL_FIELDS if not fields.get(name)]
        if missing:
            raise InvalidInputError(
                "Required fields: name, passport, rank and division", detail={"missing": missing}
            )

        async with self._unit_of_work():
            target = await self._get_policial(policial_id)
            self._gate.require_corporation_access(target.corporacao)

            # Only fields present in the request are written
            new_values = {
                name: (fields[name] or None) for name in EDITABLE_POLICIAL_FIELDS if name in fields
            }
            # discord_id is mandatory on the account; keep it when blank
            if new_values.get("discord_id", target.discord_id) is None:
                del new_values["discord_id"]
            changes = [
                f'{name}: "{getattr(target, name) or ""}" -> "{value or ""}"'
                for name, value in new_values.items()
                if (getattr(target, name) or None) != value
            ]
            if not changes:
                return ActionOutcome(changed=False, target_id=target.id)

            if new_values["passaporte"] != target.passaporte:
                await self._require_unique(Policial.passaporte, new_values["passaporte"], target.id, "Passport")
            if new_values.get("discord_id", target.discord_id) != target.discord_id:
                await self._require_unique(Policial.discord_id, new_values["discord_id"], target.id, "Discord ID")
            if new_values["patente"] != target.patente:
                await self._require_rank(target.corporacao, new_values["patente"])
            if new_values["divisao"] != target.divisao:
                await self._require_division(target.corporacao, new_values["divisao"])

            previous_name = target.nome_completo
            for name, value in new_values.items():
                setattr(target, name, value)
            await self._session.flush()

            self._history(
                target.id,
                "Atualização de Dados",
                f"Dados atualizados por {self._ctx.nome_completo}: {'. '.join(changes)}.",
            )
            entry = await self._audit(
                ActionKind.UPDATE_POLICIAL_DATA,
                {
                    "targetUserId": target.id,
                    "targetName": previous_name,
                    "changes": "; ".join(changes),
                    "adminId": self._ctx.account_id,
                },
                corporacao=target.corporacao,
            )

        return ActionOutcome(changed=True, target_id=target.id, audit=entry, data={"changes": changes})

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def create_announcement(
        self, titulo: str, conteudo: str, corporacao: str | None = None
    ) -> Announcement:
        """Publish an announcement, general or for one corporation.

        Raises:
            InvalidInputError: Unknown corporation.
            PermissionDeniedError: RH targeting another corporation.
        """
        self._require_admin()
        target = normalize_corporation(corporacao)
        if target is not None:
            self._gate.require_corporation_access(target)

        async with self._unit_of_work():
            if target is not None and not await self._corporation_exists(target):
                raise InvalidInputError(f"Invalid target corporation: {target}")
            announcement = Announcement(
                titulo=titulo,
                conteudo=conteudo,
                corporacao=target,
                autor_id=self._ctx.account_id,
                data_publicacao=datetime.now(UTC),
            )
            self._session.add(announcement)
            await self._session.flush()
            await self._audit(
                ActionKind.CREATE_ANNOUNCEMENT,
                {
                    "announcementId": announcement.id,
                    "title": titulo,
                    "targetCorp": target or "Geral",
                    "adminId": self._ctx.account_id,
                },
                corporacao=target,
            )

        logger.info("Announcement %d published for %s", announcement.id, target or "Geral")
        return announcement

    async def create_concurso(self, values: dict[str, Any]) -> Concurso:
        """Create a concurso for the actor's corporation.

        Raises:
            InvalidInputError: Non-positive number of vacancies.
        """
        self._require_admin()
        self._check_vagas(values.get("vagas"))
        corporacao = self._ctx.corporacao

        async with self._unit_of_work():
            concurso = Concurso(
                **values,
                corporacao=corporacao,
                autor_id=self._ctx.account_id,
                data_publicacao=datetime.now(UTC),
            )
            self._session.add(concurso)
            await self._session.flush()
            await self._audit(
                ActionKind.CREATE_CONCURSO,
                {
                    "concursoId": concurso.id,
                    "title": concurso.titulo,
                    "corp": corporacao,
                    "adminId": self._ctx.account_id,
                },
                corporacao=corporacao,
            )
        return concurso

    async def get_concurso(self, concurso_id: int) -> Concurso:
        """Fetch a concurso the actor may manage."""
        self._require_admin()
        return await self._get_concurso_in_scope(concurso_id)

    async def update_concurso(self, concurso_id: int, values: dict[str, Any]) -> Concurso:
        """Replace the editable fields of a concurso."""
        self._require_admin()
        if "vagas" in values:
            self._check_vagas(values["vagas"])

        async with self._unit_of_work():
            concurso = await self._get_concurso_in_scope(concurso_id)
            for name, value in values.items():
                setattr(concurso, name, value)
            await self._audit(
                ActionKind.UPDATE_CONCURSO,
                {
                    "concursoId": concurso.id,
                    "title": concurso.titulo,
                    "fields": sorted(values),
                    "adminId": self._ctx.account_id,
                },
                corporacao=concurso.corporacao,
            )
        return concurso

    async def delete_concurso(self, concurso_id: int) -> ActionOutcome:
        """Delete a concurso."""
        self._require_admin()
        async with self._unit_of_work():
            concurso = await self._get_concurso_in_scope(concurso_id)
            corporacao = concurso.corporacao
            await self._session.delete(concurso)
            entry = await self._audit(
                ActionKind.DELETE_CONCURSO,
                {"concursoId": concurso_id, "corp": corporacao, "adminId": self._ctx.account_id},
                corporacao=corporacao,
            )
        return ActionOutcome(changed=True, target_id=concurso_id, audit=entry)

    async def create_changelog_entry(
        self, title: str, content: str, version: str | None = None
    ) -> ChangelogEntry:
        """Add a portal changelog entry."""
        self._require_admin()
        async with self._unit_of_work():
            entry = ChangelogEntry(
                version=version or None,
                title=title,
                content=content,
                author_id=self._ctx.account_id,
                created_at=datetime.now(UTC),
            )
            self._session.add(entry)
            await self._session.flush()
            await self._audit(
                ActionKind.CREATE_CHANGELOG_ENTRY,
                {
                    "changelogId": entry.id,
                    "title": title,
                    "version": version or "N/A",
                    "adminId": self._ctx.account_id,
                },
            )
        return entry

    async def report_bug(self, description: str) -> AuditLogEntry:
        """Record a bug report from any active officer.

        Raises:
            PermissionDeniedError: Actor is not a police account.
            InvalidInputError: Description too short.
        """
        if not self._ctx.actor.is_policial:
            raise PermissionDeniedError("Only officers can report bugs")
        description = (description or "").strip()
        if len(description) < MIN_BUG_REPORT_LENGTH:
            raise InvalidInputError("Bug description is too short, please add more detail")

        async with self._unit_of_work():
            entry = await self._audit(
                ActionKind.BUG_REPORT,
                {
                    "description": description,
                    "reporterId": self._ctx.account_id,
                    "reporterName": self._ctx.nome_completo,
                    "corporacao": self._ctx.corporacao or "N/A",
                },
                corporacao=self._ctx.corporacao,
            )
        return entry

    # ------------------------------------------------------------------
    # Staff actions
    # ------------------------------------------------------------------

    async def staff_search_users(
        self, query: str | None, search_type: str = "Todos"
    ) -> list[dict[str, Any]]:
        """Search police and civil accounts across all corporations.

        The search itself is audited.
        """
        self._require_staff()
        if search_type not in STAFF_SEARCH_TYPES:
            raise InvalidInputError("searchType must be 'Todos', 'Policial' or 'Civil'")
        pattern = f"%{query.strip()}%" if query and query.strip() else None

        users: list[dict[str, Any]] = []
        async with self._unit_of_work():
            if search_type in ("Todos", "Policial"):
                stmt = select(Policial)
                if pattern:
                    stmt = stmt.where(
                        or_(Policial.nome_completo.ilike(pattern), Policial.passaporte.ilike(pattern))
                    )
                stmt = stmt.order_by(func.lower(Policial.nome_completo)).limit(STAFF_SEARCH_LIMIT)
                for p in (await self._session.execute(stmt)).scalars():
                    users.append(
                        {
                            "id": p.id,
                            "nome_completo": p.nome_completo,
                            "passaporte": p.passaporte,
                            "status": p.status.value,
                            "corporacao": p.corporacao,
                            "tipo": "Policial",
                        }
                    )
            if search_type in ("Todos", "Civil"):
                stmt = select(Civil)
                if pattern:
                    stmt = stmt.where(
                        or_(Civil.nome_completo.ilike(pattern), Civil.id_passaporte.ilike(pattern))
                    )
                stmt = stmt.order_by(func.lower(Civil.nome_completo)).limit(STAFF_SEARCH_LIMIT)
                for c in (await self._session.execute(stmt)).scalars():
                    users.append(
                        {
                            "id": c.id,
                            "nome_completo": c.nome_completo,
                            "passaporte": c.id_passaporte,
                            "status": "Ativo",
                            "corporacao": None,
                            "tipo": "Civil",
                        }
                    )
            users.sort(key=lambda u: u["nome_completo"].lower())
            users = users[:STAFF_SEARCH_LIMIT]
            await self._audit(
                ActionKind.STAFF_SEARCH_USERS,
                {"query": query, "type": search_type, "results": len(users)},
            )
        return users

    async def update_portal_settings(self, values: dict[str, str | None]) -> dict[str, str]:
        """Upsert portal appearance settings. None values are left unchanged."""
        self._require_staff()
        changes = {key: value for key, value in values.items() if value is not None}
        if not changes:
            raise InvalidInputError("No settings provided")

        async with self._unit_of_work():
            for key, value in changes.items():
                await self._session.merge(PortalSetting(setting_key=key, setting_value=value))
            await self._audit(ActionKind.UPDATE_PORTAL_SETTINGS, {"changes": changes})
        return changes

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_policial(self, policial_id: int) -> Policial:
        """Load an officer row for mutation, locked until the unit of work ends."""
        result = await self._session.execute(
            select(Policial)
            .where(Policial.id == policial_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        policial = result.scalar_one_or_none()
        if policial is None:
            raise ResourceNotFoundError("Officer not found")
        return policial

    async def _transition(
        self, policial: Policial, expected: PolicialStatus, **values: Any
    ) -> bool:
        """Move an officer out of ``expected`` status with a conditional update.

        Returns False, leaving the row untouched, when another transaction
        changed the status first. Databases without row locks (SQLite)
        still get exactly one winner.
        """
        result = await self._session.execute(
            update(Policial)
            .where(Policial.id == policial.id, Policial.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        for name, value in values.items():
            set_committed_value(policial, name, value)
        return True

    async def _get_concurso_in_scope(self, concurso_id: int) -> Concurso:
        concurso = await self._session.get(Concurso, concurso_id)
        if concurso is None:
            raise ResourceNotFoundError("Concurso not found")
        self._gate.require_corporation_access(concurso.corporacao)
        return concurso

    async def _require_rank(self, corporacao: str | None, nome: str | None) -> None:
        if nome is None:
            raise InvalidInputError("Rank is required")
        result = await self._session.execute(
            select(Rank.id).where(Rank.corporacao_sigla == corporacao, Rank.nome == nome)
        )
        if result.first() is None:
            raise InvalidInputError(f"Rank '{nome}' does not belong to corporation {corporacao}")

    async def _require_division(self, corporacao: str | None, nome: str | None) -> None:
        if nome is None:
            raise InvalidInputError("Division is required")
        result = await self._session.execute(
            select(Division.id).where(Division.corporacao_sigla == corporacao, Division.nome == nome)
        )
        if result.first() is None:
            raise InvalidInputError(f"Division '{nome}' does not belong to corporation {corporacao}")

    async def _require_unique(
        self, column: Any, value: str | None, exclude_id: int, label: str
    ) -> None:
        result = await self._session.execute(
            select(func.count(Policial.id)).where(column == value, Policial.id != exclude_id)
        )
        if result.scalar_one():
            raise ConflictError(f"{label} already in use", detail={"field": label})

    @staticmethod
    def _check_vagas(vagas: Any) -> None:
        if not isinstance(vagas, int) or vagas <= 0:
            raise InvalidInputError("Number of vacancies must be positive")
