"""Pydantic schemas for the RH and staff administration panels.

camelCase field names (novoStatus, policialId, novaPatente) are kept as
aliases for compatibility with the existing web client.
"""

from __future__ import annotations

# NOTE: datetime must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# -----------------------------------------------------------------------------
# Registration tokens
# -----------------------------------------------------------------------------


class GenerateTokenRequest(BaseModel):
    """Request schema for a corporation registration token."""

    max_uses: int | None = Field(None, description="Number of registrations allowed")
    duration_hours: int | None = Field(None, description="Validity window in hours")
    corporacao: str | None = Field(None, max_length=20, description="Target corporation sigla")

    model_config = ConfigDict(extra="forbid")


class GenerateTokenResponse(BaseModel):
    """A newly issued registration token. Shown once."""

    message: str
    token: str
    corporacao: str
    max_uses: int
    expires_at: datetime


# -----------------------------------------------------------------------------
# Personnel
# -----------------------------------------------------------------------------


class ReviewRecruitRequest(BaseModel):
    """Approve or reject a pending recruit."""

    novo_status: str = Field(..., alias="novoStatus", description="'Aprovado' or 'Reprovado'")
    divisao: str | None = Field(None, max_length=100)
    patente: str | None = Field(None, max_length=100)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ManageCareerRequest(BaseModel):
    """Promote or demote an officer."""

    policial_id: int = Field(..., alias="policialId")
    acao: str = Field(..., description="'Promoção' or 'Rebaixamento'")
    nova_patente: str = Field(..., alias="novaPatente", max_length=100)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class UpdatePolicialRequest(BaseModel):
    """Editable officer data. Name, passport, rank and division are required."""

    nome_completo: str | None = Field(None, max_length=150)
    passaporte: str | None = Field(None, max_length=50)
    discord_id: str | None = Field(None, max_length=50)
    telefone_rp: str | None = Field(None, max_length=30)
    patente: str | None = Field(None, max_length=100)
    divisao: str | None = Field(None, max_length=100)

    model_config = ConfigDict(extra="forbid")


# -----------------------------------------------------------------------------
# Content
# -----------------------------------------------------------------------------


class AnnouncementRequest(BaseModel):
    """Announcement for one corporation, or general when corporacao is empty/GERAL."""

    titulo: str = Field(..., min_length=1, max_length=200)
    conteudo: str = Field(..., min_length=1)
    corporacao: str | None = Field(None, max_length=20)

    model_config = ConfigDict(extra="forbid")


class ConcursoRequest(BaseModel):
    """Job posting (concurso) fields."""

    titulo: str = Field(..., min_length=1, max_length=200)
    descricao: str = Field(..., min_length=1)
    vagas: int = Field(..., description="Number of vacancies, must be positive")
    status: str = Field("Aberto", max_length=30)
    data_abertura: datetime | None = None
    data_encerramento: datetime | None = None
    link_edital: str | None = Field(None, max_length=255)
    valor: str | None = Field(None, max_length=50)

    model_config = ConfigDict(extra="forbid")


class ChangelogRequest(BaseModel):
    """Portal changelog entry."""

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    version: str | None = Field(None, max_length=30)

    model_config = ConfigDict(extra="forbid")


# -----------------------------------------------------------------------------
# Staff panel
# -----------------------------------------------------------------------------


class StaffSearchRequest(BaseModel):
    """Cross-corporation account search."""

    query: str | None = Field(None, max_length=150)
    search_type: str = Field("Todos", alias="searchType")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CorporationRequest(BaseModel):
    nome: str = Field(..., min_length=1, max_length=100)
    sigla: str = Field(..., min_length=1, max_length=20)

    model_config = ConfigDict(extra="forbid")


class CorporationPermissionsRequest(BaseModel):
    """Complete capability map of a corporation."""

    permissoes: dict[str, Any] = Field(..., description="Capability flag -> bool")

    model_config = ConfigDict(extra="forbid")


class RankRequest(BaseModel):
    nome: str = Field(..., min_length=1, max_length=100)
    corporacao_sigla: str = Field(..., min_length=1, max_length=20)
    ordem: int = Field(0, ge=0)

    model_config = ConfigDict(extra="forbid")


class DivisionRequest(BaseModel):
    nome: str = Field(..., min_length=1, max_length=100)
    corporacao_sigla: str = Field(..., min_length=1, max_length=20)

    model_config = ConfigDict(extra="forbid")


class PortalSettingsRequest(BaseModel):
    """Portal appearance. Omitted fields are left unchanged."""

    header_title: str | None = Field(None, max_length=200)
    header_subtitle: str | None = Field(None, max_length=200)
    header_logo_url: str | None = Field(None, max_length=255)
    footer_copyright: str | None = Field(None, max_length=255)

    model_config = ConfigDict(extra="forbid")
