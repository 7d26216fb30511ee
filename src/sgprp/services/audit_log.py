"""Append-only audit log for administrative actions.

Every successful mutating admin action appends exactly one record, in the
same transaction as the mutation it describes. Records are never updated
or deleted.

Action kinds are a closed enum with an explicit UNKNOWN fallback, so rows
written with labels this version does not know remain readable.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import String, cast, func, or_, select

from sgprp.db.models import AuditLogRecord, Policial

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.services.permissions import PermissionGate

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100

# Filter value meaning "any action"
ALL_ACTIONS = "Todos"


class ActionKind(Enum):
    """Kinds of audited administrative actions.

    Values are the labels persisted in ``logs_auditoria.acao``.
    """

    MANAGE_CAREER = "Manage Career"
    APPROVE_RECRUIT = "Approve Recruit"
    REJECT_RECRUIT = "Reject Recruit"
    DISMISS_POLICIAL = "Dismiss Policial"
    GENERATE_REGISTRATION_TOKEN = "Generate Registration Token"
    GENERATE_GLOBAL_TOKEN = "Generate Global Token"
    UPDATE_POLICIAL_DATA = "Update Policial Data"
    CREATE_ANNOUNCEMENT = "Create Announcement"
    CREATE_CONCURSO = "Create Concurso"
    UPDATE_CONCURSO = "Update Concurso"
    DELETE_CONCURSO = "Delete Concurso"
    CREATE_CHANGELOG_ENTRY = "Create Changelog Entry"
    UPDATE_CORPORATION_PERMISSIONS = "Update Corporation Permissions"
    STAFF_SEARCH_USERS = "Staff Search Users"
    BUG_REPORT = "Bug Report"
    UPDATE_PORTAL_SETTINGS = "Update Portal Settings"
    CREATE_CORPORATION = "Create Corporation"
    UPDATE_CORPORATION = "Update Corporation"
    DELETE_CORPORATION = "Delete Corporation"
    CREATE_RANK = "Create Rank"
    UPDATE_RANK = "Update Rank"
    DELETE_RANK = "Delete Rank"
    CREATE_DIVISION = "Create Division"
    UPDATE_DIVISION = "Update Division"
    DELETE_DIVISION = "Delete Division"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, label: str | None) -> ActionKind:
        """Interpret a stored label, falling back to UNKNOWN."""
        try:
            return cls(label)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class AuditLogEntry:
    """Immutable view of an audit log record.

    Attributes:
        id: Record id.
        usuario_id: Acting policial, if any.
        kind: Parsed action kind.
        acao: Label as stored, preserved for UNKNOWN kinds.
        detalhes: Structured details.
        corporacao: Corporation the action concerns.
        ip_address: Source address of the request.
        data_log: When the action happened.
        admin_nome: Name of the acting policial, when loaded.
        admin_corporacao: Corporation of the acting policial, when loaded.
    """

    id: int
    usuario_id: int | None
    kind: ActionKind
    acao: str
    detalhes: dict[str, Any]
    corporacao: str | None
    ip_address: str | None
    data_log: datetime | None
    admin_nome: str | None = None
    admin_corporacao: str | None = None

    @classmethod
    def from_record(
        cls,
        record: AuditLogRecord,
        admin_nome: str | None = None,
        admin_corporacao: str | None = None,
    ) -> AuditLogEntry:
        return cls(
            id=record.id,
            usuario_id=record.usuario_id,
            kind=ActionKind.parse(record.acao),
            acao=record.acao,
            detalhes=dict(record.detalhes or {}),
            corporacao=record.corporacao,
            ip_address=record.ip_address,
            data_log=record.data_log,
            admin_nome=admin_nome,
            admin_corporacao=admin_corporacao,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "usuario_id": self.usuario_id,
            "acao": self.acao,
            "detalhes": self.detalhes,
            "corporacao": self.corporacao,
            "ip_address": self.ip_address,
            "data_log": self.data_log.isoformat() if self.data_log else None,
            "admin_nome": self.admin_nome,
            "admin_corporacao": self.admin_corporacao,
        }


@dataclass(frozen=True, slots=True)
class AuditLogPage:
    """One page of audit log entries."""

    logs: list[AuditLogEntry]
    current_page: int
    total_pages: int
    total_logs: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "logs": [entry.to_dict() for entry in self.logs],
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalLogs": self.total_logs,
        }


class AuditLogService:
    """Appends and queries audit log records.

    ``append`` only flushes; the caller owns the transaction so that the
    record commits or rolls back together with the mutation it describes.

    Example:
        audit = AuditLogService(session)
        await audit.append(
            kind=ActionKind.DISMISS_POLICIAL,
            actor_id=admin.id,
            details={"targetUserId": 7},
            corporacao="PM",
            ip_address="10.0.0.1",
        )
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        *,
        kind: ActionKind,
        actor_id: int | None,
        details: dict[str, Any],
        corporacao: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLogEntry:
        """Append a record for a successful action.

        Args:
            kind: Action kind. UNKNOWN is not a valid kind to write.
            actor_id: Acting policial id.
            details: Structured details. Must not contain secrets.
            corporacao: Corporation the action concerns.
            ip_address: Source address of the request.

        Returns:
            The created entry.

        Raises:
            ValueError: If ``kind`` is UNKNOWN.
        """
        if kind is ActionKind.UNKNOWN:
            msg = "Cannot append an audit record of unknown kind"
            raise ValueError(msg)

        record = AuditLogRecord(
            usuario_id=actor_id,
            acao=kind.value,
            detalhes=details,
            corporacao=corporacao,
            ip_address=ip_address,
            data_log=datetime.now(UTC),
        )
        self._session.add(record)
        await self._session.flush()

        logger.info(
            "Audit: %s by %s (corporacao=%s)", kind.value, actor_id, corporacao or "-"
        )
        return AuditLogEntry.from_record(record)

    async def query(
        self,
        gate: PermissionGate,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        text: str | None = None,
        action: str | None = None,
        on_date: date | None = None,
    ) -> AuditLogPage:
        """Query the log as seen by an actor.

        Actors with global scope see everything. A corporation-bound RH
        sees actions by members of its corporation, actions concerning its
        corporation, and bug reports.

        Args:
            gate: Permission gate of the reading actor.
            page: 1-based page number.
            limit: Page size, capped at MAX_PAGE_SIZE.
            text: Substring matched against details, actor name and IP.
            action: Exact action label; "Todos" or empty means any.
            on_date: Only records from this (UTC) day.

        Returns:
            The requested page, newest first.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        conditions = []
        scope = gate.scope_corporation()
        if scope is not None:
            conditions.append(
                or_(
                    Policial.corporacao == scope,
                    AuditLogRecord.acao == ActionKind.BUG_REPORT.value,
                    AuditLogRecord.corporacao == scope,
                )
            )
        if text:
            pattern = f"%{text}%"
            conditions.append(
                or_(
                    cast(AuditLogRecord.detalhes, String).ilike(pattern),
                    Policial.nome_completo.ilike(pattern),
                    AuditLogRecord.ip_address.ilike(pattern),
                )
            )
        if action and action != ALL_ACTIONS:
            conditions.append(AuditLogRecord.acao == action)
        if on_date is not None:
            start = datetime.combine(on_date, time.min, tzinfo=UTC)
            conditions.append(AuditLogRecord.data_log >= start)
            conditions.append(AuditLogRecord.data_log < start + timedelta(days=1))

        base = select(AuditLogRecord, Policial.nome_completo, Policial.corporacao).outerjoin(
            Policial, AuditLogRecord.usuario_id == Policial.id
        )
        count_query = (
            select(func.count(AuditLogRecord.id))
            .select_from(AuditLogRecord)
            .outerjoin(Policial, AuditLogRecord.usuario_id == Policial.id)
        )
        if conditions:
            base = base.where(*conditions)
            count_query = count_query.where(*conditions)

        total = (await self._session.execute(count_query)).scalar_one()
        rows = (
            await self._session.execute(
                base.order_by(AuditLogRecord.data_log.desc(), AuditLogRecord.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
        ).all()

        return AuditLogPage(
            logs=[AuditLogEntry.from_record(r, nome, corp) for r, nome, corp in rows],
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_logs=total,
        )
