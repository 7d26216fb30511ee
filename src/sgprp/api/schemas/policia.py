"""Pydantic schemas for police and citizen member endpoints."""

from __future__ import annotations

# NOTE: datetime must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from sgprp.db.models import BoletimStatus


class BugReportRequest(BaseModel):
    """Bug report filed by an officer."""

    description: str = Field(..., max_length=5000, description="What went wrong")

    model_config = ConfigDict(extra="forbid")


class BoletimRegisterRequest(BaseModel):
    """Incident report filed by a citizen."""

    tipo: str = Field(..., min_length=1, max_length=100, description="Incident type")
    local: str = Field(..., min_length=1, max_length=255, description="Where it happened")
    descricao: str = Field(..., min_length=1, max_length=10000, description="Description")
    data_ocorrido: datetime = Field(..., description="When it happened")

    model_config = ConfigDict(extra="forbid")


class BoletimCreatedResponse(BaseModel):
    """Response for a filed incident report."""

    message: str
    id: int
    protocolo: str


class BoletimUpdateRequest(BaseModel):
    """Investigation update of an incident report. Omitted fields are kept."""

    status: BoletimStatus = Field(..., description="New workflow status")
    tipo: str | None = Field(None, max_length=100, description="Incident type")
    unidade_policial: str | None = Field(None, max_length=100, description="Handling unit")
    envolvidos_identificados: str | None = Field(None, max_length=10000)
    evidencias_coletadas: str | None = Field(None, max_length=10000)
    relato_policial: str | None = Field(None, max_length=10000)
    encaminhamento: str | None = Field(None, max_length=10000)
    observacoes_internas: str | None = Field(None, max_length=10000)
    mapa_x: float | None = Field(None, description="Map X coordinate")
    mapa_y: float | None = Field(None, description="Map Y coordinate")

    model_config = ConfigDict(extra="forbid")


class RelatorioCreateRequest(BaseModel):
    """Police report written by an officer."""

    tipo_relatorio: str = Field(..., min_length=1, max_length=100, description="Report type")
    descricao_detalhada: str = Field(..., min_length=1, max_length=20000)
    status: str | None = Field(None, max_length=50, description="Defaults to 'Em Aberto'")
    id_ocorrencia_associada: int | None = Field(None, description="Related boletim id")
    unidade_responsavel: str | None = Field(None, max_length=100)
    local_ocorrencia: str | None = Field(None, max_length=255)
    data_hora_fato: datetime | None = None
    natureza_ocorrencia: str | None = Field(None, max_length=100)
    testemunhas: str | None = None
    suspeitos: str | None = None
    vitimas: str | None = None
    veiculos_envolvidos: str | None = None
    objetos_apreendidos: str | None = None
    medidas_tomadas: str | None = None
    observacoes_autor: str | None = None
    mapa_x: float | None = None
    mapa_y: float | None = None

    model_config = ConfigDict(extra="forbid")


class ProfileSelfUpdateRequest(BaseModel):
    """Officer editing their own name and email."""

    nome_completo: str = Field(..., min_length=1, max_length=200)
    gmail: EmailStr = Field(..., description="Account email")

    model_config = ConfigDict(extra="forbid")
