"""Investigation notes on boletins and police reports.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 12:00:00.000000+00:00

- ocorrencias: officer-side investigation columns
- relatorios: reports written by officers
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

INVESTIGATION_COLUMNS = (
    ("unidade_policial", sa.String(length=100)),
    ("envolvidos_identificados", sa.Text()),
    ("evidencias_coletadas", sa.Text()),
    ("relato_policial", sa.Text()),
    ("encaminhamento", sa.Text()),
    ("observacoes_internas", sa.Text()),
)


def upgrade() -> None:
    """Apply migration: add investigation columns and the relatorios table."""
    for name, type_ in INVESTIGATION_COLUMNS:
        op.add_column("ocorrencias", sa.Column(name, type_, nullable=True))

    op.create_table(
        "relatorios",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "data_criacao",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("tipo_relatorio", sa.String(length=100), nullable=False),
        sa.Column("descricao_detalhada", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("unidade_responsavel", sa.String(length=100), nullable=True),
        sa.Column("local_ocorrencia", sa.String(length=255), nullable=True),
        sa.Column("data_hora_fato", sa.DateTime(timezone=True), nullable=True),
        sa.Column("natureza_ocorrencia", sa.String(length=100), nullable=True),
        sa.Column("testemunhas", sa.Text(), nullable=True),
        sa.Column("suspeitos", sa.Text(), nullable=True),
        sa.Column("vitimas", sa.Text(), nullable=True),
        sa.Column("veiculos_envolvidos", sa.Text(), nullable=True),
        sa.Column("objetos_apreendidos", sa.Text(), nullable=True),
        sa.Column("medidas_tomadas", sa.Text(), nullable=True),
        sa.Column("observacoes_autor", sa.Text(), nullable=True),
        sa.Column("mapa_x", sa.Float(), nullable=True),
        sa.Column("mapa_y", sa.Float(), nullable=True),
        sa.Column("id_ocorrencia_associada", sa.Integer(), nullable=True),
        sa.Column("id_policial_autor", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["id_ocorrencia_associada"],
            ["ocorrencias.id"],
            name=op.f("fk_relatorios_id_ocorrencia_associada_ocorrencias"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["id_policial_autor"],
            ["policiais.id"],
            name=op.f("fk_relatorios_id_policial_autor_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_relatorios")),
    )


def downgrade() -> None:
    """Revert migration: drop relatorios and the investigation columns."""
    op.drop_table("relatorios")
    for name, _ in reversed(INVESTIGATION_COLUMNS):
        op.drop_column("ocorrencias", name)
