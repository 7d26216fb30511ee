"""Portal content: announcements, job postings, changelog, settings and incident reports."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sgprp.db.models.base import (
    Base,
    BoletimStatus,
    IntPrimaryKey,
    OptionalTimestampTZ,
    TimestampTZ,
    UTCDateTime,
    enum_type,
)


class Announcement(Base):
    """Announcement (anuncio). A null corporation means it is general."""

    __tablename__ = "anuncios"

    id: Mapped[IntPrimaryKey]
    data_publicacao: Mapped[TimestampTZ]

    titulo: Mapped[str] = mapped_column(String(200), nullable=False)
    conteudo: Mapped[str] = mapped_column(Text, nullable=False)
    corporacao: Mapped[str | None] = mapped_column(String(20), nullable=True)
    autor_id: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )


class Concurso(Base):
    """Recruitment posting for a corporation."""

    __tablename__ = "concursos"

    id: Mapped[IntPrimaryKey]
    data_publicacao: Mapped[TimestampTZ]

    titulo: Mapped[str] = mapped_column(String(200), nullable=False)
    descricao: Mapped[str] = mapped_column(Text, nullable=False)
    vagas: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Aberto")
    data_abertura: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    data_encerramento: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    link_edital: Mapped[str | None] = mapped_column(String(255), nullable=True)
    valor: Mapped[str | None] = mapped_column(String(50), nullable=True)
    corporacao: Mapped[str | None] = mapped_column(String(20), nullable=True)
    autor_id: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )


class ChangelogEntry(Base):
    """Portal changelog entry."""

    __tablename__ = "changelog_entries"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    version: Mapped[str | None] = mapped_column(String(30), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )


class PortalSetting(Base):
    """Key/value portal appearance setting."""

    __tablename__ = "portal_settings"

    setting_key: Mapped[str] = mapped_column(String(100), primary_key=True)
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)


class Boletim(Base):
    """Incident report (boletim de ocorrencia) filed by a citizen."""

    __tablename__ = "ocorrencias"

    id: Mapped[IntPrimaryKey]
    data_registro: Mapped[TimestampTZ]

    protocolo: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    tipo: Mapped[str] = mapped_column(String(100), nullable=False)
    descricao: Mapped[str] = mapped_column(Text, nullable=False)
    local: Mapped[str] = mapped_column(String(255), nullable=False)
    data_ocorrido: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[BoletimStatus] = mapped_column(
        enum_type(BoletimStatus, "boletim_status"),
        nullable=False,
        default=BoletimStatus.AWAITING_REVIEW,
    )

    usuario_id: Mapped[int | None] = mapped_column(
        ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True
    )
    policial_responsavel_id: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )
    data_assumido: Mapped[OptionalTimestampTZ]

    # Investigation notes kept by the responsible officer
    unidade_policial: Mapped[str | None] = mapped_column(String(100), nullable=True)
    envolvidos_identificados: Mapped[str | None] = mapped_column(Text, nullable=True)
    evidencias_coletadas: Mapped[str | None] = mapped_column(Text, nullable=True)
    relato_policial: Mapped[str | None] = mapped_column(Text, nullable=True)
    encaminhamento: Mapped[str | None] = mapped_column(Text, nullable=True)
    observacoes_internas: Mapped[str | None] = mapped_column(Text, nullable=True)

    mapa_x: Mapped[float | None] = mapped_column(Float, nullable=True)
    mapa_y: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (Index("ix_ocorrencias_status", "status"),)


class Relatorio(Base):
    """Police report written by an officer, optionally tied to a boletim."""

    __tablename__ = "relatorios"

    id: Mapped[IntPrimaryKey]
    data_criacao: Mapped[TimestampTZ]

    tipo_relatorio: Mapped[str] = mapped_column(String(100), nullable=False)
    descricao_detalhada: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Em Aberto")
    unidade_responsavel: Mapped[str | None] = mapped_column(String(100), nullable=True)
    local_ocorrencia: Mapped[str | None] = mapped_column(String(255), nullable=True)
    data_hora_fato: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    natureza_ocorrencia: Mapped[str | None] = mapped_column(String(100), nullable=True)
    testemunhas: Mapped[str | None] = mapped_column(Text, nullable=True)
    suspeitos: Mapped[str | None] = mapped_column(Text, nullable=True)
    vitimas: Mapped[str | None] = mapped_column(Text, nullable=True)
    veiculos_envolvidos: Mapped[str | None] = mapped_column(Text, nullable=True)
    objetos_apreendidos: Mapped[str | None] = mapped_column(Text, nullable=True)
    medidas_tomadas: Mapped[str | None] = mapped_column(Text, nullable=True)
    observacoes_autor: Mapped[str | None] = mapped_column(Text, nullable=True)
    mapa_x: Mapped[float | None] = mapped_column(Float, nullable=True)
    mapa_y: Mapped[float | None] = mapped_column(Float, nullable=True)

    id_ocorrencia_associada: Mapped[int | None] = mapped_column(
        ForeignKey("ocorrencias.id", ondelete="SET NULL"), nullable=True
    )
    id_policial_autor: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )
