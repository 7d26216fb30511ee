"""Base model definitions and common column types.

This module provides:
- SQLAlchemy declarative base with naming conventions
- Reusable annotated column types
- Enum types shared by several models
"""

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from sqlalchemy import JSON, DateTime, Enum, Integer, MetaData, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, mapped_column, registry
from sqlalchemy.types import TypeDecorator

# Naming convention for constraints ensures consistent migration generation.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

type_registry = registry()


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always round-trips as UTC.

    Backends without native timezone support hand back naive values;
    those are interpreted as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


# JSON document, stored as JSONB on PostgreSQL
JSONDocument = JSON().with_variant(JSONB(), "postgresql")

# Integer surrogate key; ids appear in URLs (/recrutas/{id})
IntPrimaryKey = Annotated[int, mapped_column(Integer, primary_key=True, autoincrement=True)]

# Timestamp with timezone, defaults to now
TimestampTZ = Annotated[
    datetime,
    mapped_column(UTCDateTime(), server_default=func.now(), nullable=False),
]

# Optional timestamp with timezone
OptionalTimestampTZ = Annotated[
    datetime | None,
    mapped_column(UTCDateTime(), nullable=True),
]


class Base(DeclarativeBase):
    """Declarative base for all SGP-RP models."""

    metadata = metadata
    registry = type_registry

    # Load server-generated columns (created_at) right after INSERT
    __mapper_args__ = {"eager_defaults": True}


def enum_type(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Enum column type that persists member values rather than names."""
    return Enum(
        enum_cls,
        name=name,
        create_constraint=True,
        values_callable=lambda members: [member.value for member in members],
    )


# =============================================================================
# Common Enums
# =============================================================================


class PolicialStatus(str, enum.Enum):
    """Lifecycle of a police account.

    Values:
        PENDING: Registered through a token, awaiting RH review
        APPROVED: Active member of a corporation
        REJECTED: Terminal state for rejected recruits and dismissed officers
    """

    PENDING = "Em Análise"
    APPROVED = "Aprovado"
    REJECTED = "Reprovado"


class RecoveryState(str, enum.Enum):
    """States of a password recovery challenge.

    Values:
        REQUESTED: Code issued, awaiting verification
        VERIFIED: Code accepted, reset token outstanding
        COMPLETE: Credential replaced, reset token consumed
        EXPIRED: Attempts exhausted or reset token lapsed
    """

    REQUESTED = "requested"
    VERIFIED = "verified"
    COMPLETE = "complete"
    EXPIRED = "expired"


class RecoveryFlow(str, enum.Enum):
    """Flows a recovery challenge can scope."""

    PASSWORD_RESET = "password_reset"


class BoletimStatus(str, enum.Enum):
    """Incident report workflow states."""

    AWAITING_REVIEW = "Aguardando Análise"
    INVESTIGATING = "Em Investigação"
    RESOLVED = "Resolvido"
    ARCHIVED = "Arquivado"
    FALSE_REPORT = "Falso"
