"""Initial schema with all core tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

Creates all tables for SGP-RP:
- corporacoes, patentes, divisoes (organisation)
- policiais, usuarios, policial_historico (accounts)
- recovery_challenges, registration_tokens (credentials)
- logs_auditoria (audit)
- anuncios, concursos, changelog_entries, portal_settings, ocorrencias (content)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "policial_status": ("Em Análise", "Aprovado", "Reprovado"),
    "recovery_state": ("requested", "verified", "complete", "expired"),
    "recovery_flow": ("password_reset",),
    "boletim_status": (
        "Aguardando Análise",
        "Em Investigação",
        "Resolvido",
        "Arquivado",
        "Falso",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
    )


def upgrade() -> None:
    """Apply migration: Initial schema with all core tables."""
    for name in ENUMS:
        _enum(name).create(op.get_bind(), checkfirst=True)

    # Organisation
    op.create_table(
        "corporacoes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("nome", sa.String(length=100), nullable=False),
        sa.Column("sigla", sa.String(length=20), nullable=False),
        sa.Column(
            "permissoes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_corporacoes")),
        sa.UniqueConstraint("sigla", name=op.f("uq_corporacoes_sigla")),
    )

    op.create_table(
        "patentes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nome", sa.String(length=100), nullable=False),
        sa.Column("corporacao_sigla", sa.String(length=20), nullable=False),
        sa.Column("ordem", sa.Integer(), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(
            ["corporacao_sigla"],
            ["corporacoes.sigla"],
            name=op.f("fk_patentes_corporacao_sigla_corporacoes"),
            onupdate="CASCADE",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_patentes")),
        sa.UniqueConstraint("corporacao_sigla", "nome", name="uq_patentes_corporacao_nome"),
    )
    op.create_index(
        "ix_patentes_corporacao_ordem", "patentes", ["corporacao_sigla", "ordem"], unique=False
    )

    op.create_table(
        "divisoes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nome", sa.String(length=100), nullable=False),
        sa.Column("corporacao_sigla", sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(
            ["corporacao_sigla"],
            ["corporacoes.sigla"],
            name=op.f("fk_divisoes_corporacao_sigla_corporacoes"),
            onupdate="CASCADE",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_divisoes")),
        sa.UniqueConstraint("corporacao_sigla", "nome", name="uq_divisoes_corporacao_nome"),
    )

    # Accounts
    op.create_table(
        "policiais",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("nome_completo", sa.String(length=150), nullable=False),
        sa.Column("passaporte", sa.String(length=50), nullable=False),
        sa.Column("discord_id", sa.String(length=50), nullable=False),
        sa.Column("telefone_rp", sa.String(length=30), nullable=True),
        sa.Column("gmail", sa.String(length=255), nullable=False),
        sa.Column("senha_hash", sa.String(length=100), nullable=False),
        sa.Column("status", _enum("policial_status"), nullable=False),
        sa.Column("corporacao", sa.String(length=20), nullable=True),
        sa.Column("patente", sa.String(length=100), nullable=True),
        sa.Column("divisao", sa.String(length=100), nullable=True),
        sa.Column(
            "permissoes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("foto_url", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(
            ["corporacao"],
            ["corporacoes.sigla"],
            name=op.f("fk_policiais_corporacao_corporacoes"),
            onupdate="CASCADE",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_policiais")),
        sa.UniqueConstraint("passaporte", name=op.f("uq_policiais_passaporte")),
        sa.UniqueConstraint("discord_id", name=op.f("uq_policiais_discord_id")),
        sa.UniqueConstraint("gmail", name=op.f("uq_policiais_gmail")),
    )
    op.create_index(
        "ix_policiais_status_corporacao", "policiais", ["status", "corporacao"], unique=False
    )

    op.create_table(
        "usuarios",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("id_passaporte", sa.String(length=50), nullable=False),
        sa.Column("nome_completo", sa.String(length=150), nullable=False),
        sa.Column("telefone_rp", sa.String(length=30), nullable=True),
        sa.Column("gmail", sa.String(length=255), nullable=False),
        sa.Column("senha_hash", sa.String(length=100), nullable=False),
        sa.Column("cargo", sa.String(length=50), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_usuarios")),
        sa.UniqueConstraint("id_passaporte", name=op.f("uq_usuarios_id_passaporte")),
        sa.UniqueConstraint("gmail", name=op.f("uq_usuarios_gmail")),
    )

    op.create_table(
        "policial_historico",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("policial_id", sa.Integer(), nullable=False),
        sa.Column("tipo_evento", sa.String(length=50), nullable=False),
        sa.Column("descricao", sa.Text(), nullable=False),
        _created_at("data_evento"),
        sa.Column("responsavel_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["policial_id"],
            ["policiais.id"],
            name=op.f("fk_policial_historico_policial_id_policiais"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["responsavel_id"],
            ["policiais.id"],
            name=op.f("fk_policial_historico_responsavel_id_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_policial_historico")),
    )
    op.create_index(
        "ix_policial_historico_policial_id", "policial_historico", ["policial_id"], unique=False
    )

    # Credentials
    op.create_table(
        "recovery_challenges",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("flow", _enum("recovery_flow"), nullable=False),
        sa.Column("state", _enum("recovery_state"), nullable=False),
        sa.Column("code_hash", sa.String(length=64), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("failed_attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("reset_jti", sa.String(length=64), nullable=True),
        sa.Column("reset_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_recovery_challenges")),
        sa.UniqueConstraint("email", "flow", name="uq_recovery_challenges_email_flow"),
    )

    op.create_table(
        "registration_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("corporacao", sa.String(length=20), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("max_uses", sa.Integer(), server_default="1", nullable=False),
        sa.Column("use_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("status_detail", sa.String(length=100), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["corporacao"],
            ["corporacoes.sigla"],
            name=op.f("fk_registration_tokens_corporacao_corporacoes"),
            onupdate="CASCADE",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["policiais.id"],
            name=op.f("fk_registration_tokens_created_by_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_registration_tokens")),
        sa.UniqueConstraint("token", name=op.f("uq_registration_tokens_token")),
    )
    op.create_index(
        "ix_registration_tokens_is_active", "registration_tokens", ["is_active"], unique=False
    )

    # Audit
    op.create_table(
        "logs_auditoria",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at("data_log"),
        sa.Column("usuario_id", sa.Integer(), nullable=True),
        sa.Column("acao", sa.String(length=100), nullable=False),
        sa.Column(
            "detalhes",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column("corporacao", sa.String(length=20), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(
            ["usuario_id"],
            ["policiais.id"],
            name=op.f("fk_logs_auditoria_usuario_id_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_logs_auditoria")),
    )
    op.create_index("ix_logs_auditoria_data_log", "logs_auditoria", ["data_log"], unique=False)
    op.create_index("ix_logs_auditoria_acao", "logs_auditoria", ["acao"], unique=False)
    op.create_index(
        "ix_logs_auditoria_corporacao", "logs_auditoria", ["corporacao"], unique=False
    )

    # Content
    op.create_table(
        "anuncios",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at("data_publicacao"),
        sa.Column("titulo", sa.String(length=200), nullable=False),
        sa.Column("conteudo", sa.Text(), nullable=False),
        sa.Column("corporacao", sa.String(length=20), nullable=True),
        sa.Column("autor_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["autor_id"],
            ["policiais.id"],
            name=op.f("fk_anuncios_autor_id_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_anuncios")),
    )

    op.create_table(
        "concursos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at("data_publicacao"),
        sa.Column("titulo", sa.String(length=200), nullable=False),
        sa.Column("descricao", sa.Text(), nullable=False),
        sa.Column("vagas", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=30), server_default="Aberto", nullable=False),
        sa.Column("data_abertura", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_encerramento", sa.DateTime(timezone=True), nullable=True),
        sa.Column("link_edital", sa.String(length=255), nullable=True),
        sa.Column("valor", sa.String(length=50), nullable=True),
        sa.Column("corporacao", sa.String(length=20), nullable=True),
        sa.Column("autor_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["autor_id"],
            ["policiais.id"],
            name=op.f("fk_concursos_autor_id_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_concursos")),
    )

    op.create_table(
        "changelog_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("version", sa.String(length=30), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["author_id"],
            ["policiais.id"],
            name=op.f("fk_changelog_entries_author_id_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_changelog_entries")),
    )

    op.create_table(
        "portal_settings",
        sa.Column("setting_key", sa.String(length=100), nullable=False),
        sa.Column("setting_value", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("setting_key", name=op.f("pk_portal_settings")),
    )

    op.create_table(
        "ocorrencias",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _created_at("data_registro"),
        sa.Column("protocolo", sa.String(length=50), nullable=False),
        sa.Column("tipo", sa.String(length=100), nullable=False),
        sa.Column("descricao", sa.Text(), nullable=False),
        sa.Column("local", sa.String(length=255), nullable=False),
        sa.Column("data_ocorrido", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", _enum("boletim_status"), nullable=False),
        sa.Column("usuario_id", sa.Integer(), nullable=True),
        sa.Column("policial_responsavel_id", sa.Integer(), nullable=True),
        sa.Column("data_assumido", sa.DateTime(timezone=True), nullable=True),
        sa.Column("mapa_x", sa.Float(), nullable=True),
        sa.Column("mapa_y", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(
            ["usuario_id"],
            ["usuarios.id"],
            name=op.f("fk_ocorrencias_usuario_id_usuarios"),
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["policial_responsavel_id"],
            ["policiais.id"],
            name=op.f("fk_ocorrencias_policial_responsavel_id_policiais"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ocorrencias")),
        sa.UniqueConstraint("protocolo", name=op.f("uq_ocorrencias_protocolo")),
    )
    op.create_index("ix_ocorrencias_status", "ocorrencias", ["status"], unique=False)


def downgrade() -> None:
    """Revert migration: Drop all tables and enum types."""
    op.drop_index("ix_ocorrencias_status", table_name="ocorrencias")
    op.drop_table("ocorrencias")
    op.drop_table("portal_settings")
    op.drop_table("changelog_entries")
    op.drop_table("concursos")
    op.drop_table("anuncios")
    op.drop_index("ix_logs_auditoria_corporacao", table_name="logs_auditoria")
    op.drop_index("ix_logs_auditoria_acao", table_name="logs_auditoria")
    op.drop_index("ix_logs_auditoria_data_log", table_name="logs_auditoria")
    op.drop_table("logs_auditoria")
    op.drop_index("ix_registration_tokens_is_active", table_name="registration_tokens")
    op.drop_table("registration_tokens")
    op.drop_table("recovery_challenges")
    op.drop_index("ix_policial_historico_policial_id", table_name="policial_historico")
    op.drop_table("policial_historico")
    op.drop_table("usuarios")
    op.drop_index("ix_policiais_status_corporacao", table_name="policiais")
    op.drop_table("policiais")
    op.drop_table("divisoes")
    op.drop_index("ix_patentes_corporacao_ordem", table_name="patentes")
    op.drop_table("patentes")
    op.drop_table("corporacoes")

    for name in reversed(ENUMS):
        _enum(name).drop(op.get_bind(), checkfirst=True)
