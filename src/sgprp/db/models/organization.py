"""Organisational hierarchy: corporations, ranks and divisions.

A corporation owns its ranks (ordered) and divisions. Ranks and divisions
reference the corporation by sigla, and policiais store rank and division
by name within their corporation.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sgprp.db.models.base import (
    Base,
    IntPrimaryKey,
    JSONDocument,
    TimestampTZ,
)


class Corporation(Base):
    """A police corporation (PM, PC, ...).

    `permissoes` holds corporation-wide capability flags such as
    ``{"podeAssumirBO": true}``. They are merged with each member's
    individual overrides when building the actor's capability set.
    """

    __tablename__ = "corporacoes"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    nome: Mapped[str] = mapped_column(String(100), nullable=False)
    sigla: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    permissoes: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )


class Rank(Base):
    """A rank (patente) within a corporation, ordered by `ordem`."""

    __tablename__ = "patentes"

    id: Mapped[IntPrimaryKey]
    nome: Mapped[str] = mapped_column(String(100), nullable=False)
    corporacao_sigla: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("corporacoes.sigla", onupdate="CASCADE", ondelete="RESTRICT"),
        nullable=False,
    )
    ordem: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("corporacao_sigla", "nome", name="uq_patentes_corporacao_nome"),
        Index("ix_patentes_corporacao_ordem", "corporacao_sigla", "ordem"),
    )


class Division(Base):
    """A division (divisao) within a corporation."""

    __tablename__ = "divisoes"

    id: Mapped[IntPrimaryKey]
    nome: Mapped[str] = mapped_column(String(100), nullable=False)
    corporacao_sigla: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("corporacoes.sigla", onupdate="CASCADE", ondelete="RESTRICT"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("corporacao_sigla", "nome", name="uq_divisoes_corporacao_nome"),
    )
