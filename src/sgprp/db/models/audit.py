"""Audit log records for administrative actions."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sgprp.db.models.base import Base, IntPrimaryKey, JSONDocument, TimestampTZ


class AuditLogRecord(Base):
    """Append-only record of one successful administrative action.

    `acao` holds the action kind label (see ``ActionKind``); unknown
    labels written by older or newer versions remain readable.
    `corporacao` is the corporation the action concerns and drives the
    RH-scoped log view.
    """

    __tablename__ = "logs_auditoria"

    id: Mapped[IntPrimaryKey]
    data_log: Mapped[TimestampTZ]

    usuario_id: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )
    acao: Mapped[str] = mapped_column(String(100), nullable=False)
    detalhes: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    corporacao: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    __table_args__ = (
        Index("ix_logs_auditoria_data_log", "data_log"),
        Index("ix_logs_auditoria_acao", "acao"),
        Index("ix_logs_auditoria_corporacao", "corporacao"),
    )
