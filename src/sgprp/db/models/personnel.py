"""Account models: police officers, citizens and career history."""

from __future__ import annotations

from typing import Any

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sgprp.db.models.base import (
    Base,
    IntPrimaryKey,
    JSONDocument,
    PolicialStatus,
    TimestampTZ,
    enum_type,
)


class Policial(Base):
    """Police-affiliated account.

    Created in the PENDING state through a registration token and moved
    to APPROVED or REJECTED by RH. Rows are never deleted: dismissal is
    the transition to REJECTED with rank and division cleared.
    """

    __tablename__ = "policiais"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    nome_completo: Mapped[str] = mapped_column(String(150), nullable=False)
    passaporte: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    discord_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    telefone_rp: Mapped[str | None] = mapped_column(String(30), nullable=True)
    gmail: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    senha_hash: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[PolicialStatus] = mapped_column(
        enum_type(PolicialStatus, "policial_status"),
        nullable=False,
        default=PolicialStatus.PENDING,
    )
    corporacao: Mapped[str | None] = mapped_column(
        String(20),
        ForeignKey("corporacoes.sigla", onupdate="CASCADE", ondelete="SET NULL"),
        nullable=True,
    )
    patente: Mapped[str | None] = mapped_column(String(100), nullable=True)
    divisao: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Individual capability overrides (is_rh, is_staff, is_dev, ...)
    permissoes: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )

    foto_url: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_policiais_status_corporacao", "status", "corporacao"),
    )


class Civil(Base):
    """Citizen account. Active immediately after registration."""

    __tablename__ = "usuarios"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    id_passaporte: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    nome_completo: Mapped[str] = mapped_column(String(150), nullable=False)
    telefone_rp: Mapped[str | None] = mapped_column(String(30), nullable=True)
    gmail: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    senha_hash: Mapped[str] = mapped_column(String(100), nullable=False)
    cargo: Mapped[str | None] = mapped_column(String(50), nullable=True)


class PolicialHistory(Base):
    """Career history entry for a policial."""

    __tablename__ = "policial_historico"

    id: Mapped[IntPrimaryKey]
    policial_id: Mapped[int] = mapped_column(
        ForeignKey("policiais.id", ondelete="CASCADE"), nullable=False
    )
    tipo_evento: Mapped[str] = mapped_column(String(50), nullable=False)
    descricao: Mapped[str] = mapped_column(Text, nullable=False)
    data_evento: Mapped[TimestampTZ]
    responsavel_id: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (Index("ix_policial_historico_policial_id", "policial_id"),)
