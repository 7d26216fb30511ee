"""Short-lived credentials: recovery challenges and registration tokens."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sgprp.db.models.base import (
    Base,
    IntPrimaryKey,
    OptionalTimestampTZ,
    RecoveryFlow,
    RecoveryState,
    TimestampTZ,
    UTCDateTime,
    enum_type,
)


class RecoveryChallenge(Base):
    """One-time code bound to an email for a recovery flow.

    There is at most one row per (email, flow). Issuing a new challenge
    upserts the row, which discards the previous code, attempt count and
    any outstanding reset token.

    The raw code is never stored, only its SHA-256 hash. After
    verification `code_hash` is cleared and `reset_jti` identifies the
    single reset token that may complete the flow.
    """

    __tablename__ = "recovery_challenges"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    flow: Mapped[RecoveryFlow] = mapped_column(
        enum_type(RecoveryFlow, "recovery_flow"),
        nullable=False,
        default=RecoveryFlow.PASSWORD_RESET,
    )
    state: Mapped[RecoveryState] = mapped_column(
        enum_type(RecoveryState, "recovery_state"),
        nullable=False,
        default=RecoveryState.REQUESTED,
    )

    code_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    reset_jti: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reset_expires_at: Mapped[OptionalTimestampTZ]
    completed_at: Mapped[OptionalTimestampTZ]

    __table_args__ = (
        UniqueConstraint("email", "flow", name="uq_recovery_challenges_email_flow"),
    )

    @property
    def is_code_expired(self) -> bool:
        """Check whether the verification window has elapsed."""
        return datetime.now(UTC) > self.expires_at


class RegistrationToken(Base):
    """Corporation-scoped token allowing self-registration as policial.

    `use_count` only ever grows; the token is deactivated once it reaches
    `max_uses`. Expiry is checked when the token is presented.
    """

    __tablename__ = "registration_tokens"

    id: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    corporacao: Mapped[str] = mapped_column(
        String(20),
        ForeignKey("corporacoes.sigla", onupdate="CASCADE", ondelete="CASCADE"),
        nullable=False,
    )
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("policiais.id", ondelete="SET NULL"), nullable=True
    )

    max_uses: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    use_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status_detail: Mapped[str | None] = mapped_column(String(100), nullable=True)
    used_at: Mapped[OptionalTimestampTZ]

    __table_args__ = (Index("ix_registration_tokens_is_active", "is_active"),)

    @property
    def remaining_uses(self) -> int:
        """Number of registrations this token still permits."""
        return max(self.max_uses - self.use_count, 0)

    @property
    def is_expired(self) -> bool:
        """Check if the token has expired."""
        return datetime.now(UTC) > self.expires_at
