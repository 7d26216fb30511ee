"""Password recovery: request code, verify code, reset password.

The flow is a per-email state machine stored in ``recovery_challenges``:

    REQUESTED --correct code--> VERIFIED --reset token + password--> COMPLETE
    REQUESTED --wrong code / elapsed--> REQUESTED (retry allowed)
    REQUESTED --max failed attempts--> EXPIRED
    VERIFIED  --reset token expired--> EXPIRED

Requesting a new code always upserts the single challenge row for the
email, which discards the previous code and any outstanding reset token.
Expiry is evaluated lazily when a code or token is presented.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite

from sgprp.db.models import Civil, Policial, RecoveryChallenge, RecoveryFlow, RecoveryState
from sgprp.services.errors import (
    ExpiredChallengeError,
    InvalidCodeError,
    InvalidResetTokenError,
    ResourceNotFoundError,
    WeakCredentialError,
)
from sgprp.services.passwords import hash_password
from sgprp.services.tokens import (
    ExpiredResetTokenError,
    IssuedToken,
    ResetClaims,
    TokenIssuer,
    generate_recovery_code,
    hash_secret,
    secret_matches,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.core.config import Settings

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CodeSender(Protocol):
    """Delivers a recovery code to the owner of an email address."""

    async def send_code(self, email: str, code: str, expires_at: datetime) -> None: ...


class LoggingCodeSender:
    """Code sender for development deployments without email delivery.

    The code itself is only written to the log when debug is enabled.
    """

    def __init__(self, *, debug: bool = False) -> None:
        self._debug = debug

    async def send_code(self, email: str, code: str, expires_at: datetime) -> None:
        if self._debug:
            logger.info("Recovery code for %s: %s (expires %s)", email, code, expires_at)
        else:
            logger.info("Recovery code issued for %s (expires %s)", email, expires_at)


@dataclass(frozen=True, slots=True)
class IssuedChallenge:
    """Result of requesting a recovery code.

    Attributes:
        email: Normalized email the code is bound to.
        expires_at: End of the verification window.
    """

    email: str
    expires_at: datetime


def normalize_email(email: str) -> str:
    return email.strip().lower()


class RecoveryService:
    """Drives the forgot/verify/reset password flow.

    Each public method is its own unit of work and commits on success.

    Example:
        service = RecoveryService.from_settings(session, settings)
        await service.request_code("user@example.com")
        issued = await service.verify_code("user@example.com", "123456")
        await service.reset_password(issued.token, "new-password")
    """

    flow = RecoveryFlow.PASSWORD_RESET

    def __init__(
        self,
        session: AsyncSession,
        issuer: TokenIssuer,
        *,
        code_sender: CodeSender | None = None,
        code_ttl_minutes: int = 15,
        max_attempts: int = 5,
        min_password_length: int = 8,
        bcrypt_rounds: int = 10,
    ) -> None:
        self._session = session
        self._issuer = issuer
        self._code_sender = code_sender or LoggingCodeSender()
        self._code_ttl = timedelta(minutes=code_ttl_minutes)
        self._max_attempts = max_attempts
        self._min_password_length = min_password_length
        self._bcrypt_rounds = bcrypt_rounds

    @classmethod
    def from_settings(
        cls,
        session: AsyncSession,
        settings: Settings,
        *,
        issuer: TokenIssuer | None = None,
        code_sender: CodeSender | None = None,
    ) -> RecoveryService:
        return cls(
            session,
            issuer or TokenIssuer.from_settings(settings),
            code_sender=code_sender or LoggingCodeSender(debug=settings.debug),
            code_ttl_minutes=settings.recovery.code_ttl_minutes,
            max_attempts=settings.recovery.max_attempts,
            min_password_length=settings.security.min_password_length,
            bcrypt_rounds=settings.security.bcrypt_rounds,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def request_code(self, email: str) -> IssuedChallenge:
        """Issue a new recovery code for an email.

        Any previous challenge for the email is replaced.

        Raises:
            ResourceNotFoundError: If no account uses the email.
        """
        email = normalize_email(email)
        if not await self._find_accounts(email):
            logger.info("Recovery requested for unregistered email")
            raise ResourceNotFoundError("No account is registered with this email")

        code = generate_recovery_code()
        expires_at = datetime.now(UTC) + self._code_ttl
        await self._upsert_challenge(email, hash_secret(code), expires_at)
        await self._session.commit()

        await self._code_sender.send_code(email, code, expires_at)
        logger.info("Recovery challenge issued for %s", email)
        return IssuedChallenge(email=email, expires_at=expires_at)

    async def verify_code(self, email: str, code: str) -> IssuedToken:
        """Check a recovery code and exchange it for a reset token.

        Returns:
            The reset token. Its ``jti`` is bound to the challenge.

        Raises:
            InvalidCodeError: No open challenge, or the code is wrong.
            ExpiredChallengeError: The code was submitted too late.
        """
        email = normalize_email(email)
        challenge = await self._get_challenge(email)
        if (
            challenge is None
            or challenge.state is not RecoveryState.REQUESTED
            or challenge.code_hash is None
        ):
            raise InvalidCodeError("Invalid or expired code")

        if challenge.is_code_expired:
            raise ExpiredChallengeError("Code expired, request a new one")

        if not secret_matches(code.strip(), challenge.code_hash):
            challenge.failed_attempts += 1
            if challenge.failed_attempts >= self._max_attempts:
                challenge.state = RecoveryState.EXPIRED
                challenge.code_hash = None
                logger.warning("Recovery challenge for %s exhausted its attempts", email)
            await self._session.commit()
            raise InvalidCodeError("Invalid or expired code")

        issued = self._issuer.issue_reset_token(email)
        challenge.state = RecoveryState.VERIFIED
        challenge.code_hash = None
        challenge.reset_jti = issued.jti
        challenge.reset_expires_at = issued.expires_at
        await self._session.commit()

        logger.info("Recovery code verified for %s", email)
        return issued

    async def reset_password(self, reset_token: str, new_password: str) -> int:
        """Replace the password of every account bound to the token's email.

        Returns:
            Number of accounts updated.

        Raises:
            WeakCredentialError: Password below the minimum length.
            InvalidResetTokenError: Token invalid, expired or already used.
        """
        if len(new_password) < self._min_password_length:
            raise WeakCredentialError(
                f"Password must have at least {self._min_password_length} characters"
            )

        try:
            claims = self._issuer.decode_reset_token(reset_token)
        except ExpiredResetTokenError as e:
            await self._expire_challenge(e.claims)
            raise

        # Consuming the token is a single conditional update: of two
        # concurrent resets with the same token only one matches the row.
        claimed = await self._session.execute(
            update(RecoveryChallenge)
            .where(
                RecoveryChallenge.email == claims.email,
                RecoveryChallenge.flow == self.flow,
                RecoveryChallenge.state == RecoveryState.VERIFIED,
                RecoveryChallenge.reset_jti == claims.jti,
            )
            .values(
                state=RecoveryState.COMPLETE,
                reset_jti=None,
                reset_expires_at=None,
                completed_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            await self._session.rollback()
            logger.warning("Rejected reset token for %s", claims.email)
            raise InvalidResetTokenError("Reset token is invalid or was already used")

        password_hash = hash_password(new_password, rounds=self._bcrypt_rounds)
        accounts = await self._find_accounts(claims.email)
        for account in accounts:
            account.senha_hash = password_hash
        await self._session.commit()

        logger.info("Password reset completed for %s (%d accounts)", claims.email, len(accounts))
        return len(accounts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _find_accounts(self, email: str) -> list[Policial | Civil]:
        accounts: list[Policial | Civil] = []
        for model in (Civil, Policial):
            result = await self._session.execute(
                select(model).where(func.lower(model.gmail) == email)
            )
            accounts.extend(result.scalars().all())
        return accounts

    async def _get_challenge(self, email: str) -> RecoveryChallenge | None:
        result = await self._session.execute(
            select(RecoveryChallenge)
            .where(RecoveryChallenge.email == email, RecoveryChallenge.flow == self.flow)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _upsert_challenge(self, email: str, code_hash: str, expires_at: datetime) -> None:
        """Create or replace the challenge for (email, flow) in one statement."""
        dialect = self._session.get_bind().dialect.name
        try:
            insert = _UPSERT_DIALECTS[dialect]
        except KeyError:
            msg = f"Unsupported database dialect for challenge upsert: {dialect}"
            raise RuntimeError(msg) from None

        now = datetime.now(UTC)
        values = {
            "state": RecoveryState.REQUESTED,
            "code_hash": code_hash,
            "expires_at": expires_at,
            "failed_attempts": 0,
            "reset_jti": None,
            "reset_expires_at": None,
            "completed_at": None,
            "created_at": now,
        }
        stmt = insert(RecoveryChallenge).values(email=email, flow=self.flow, **values)
        stmt = stmt.on_conflict_do_update(index_elements=["email", "flow"], set_=values)
        await self._session.execute(stmt)

    async def _expire_challenge(self, claims: ResetClaims) -> None:
        """Retire the challenge an expired reset token belonged to."""
        challenge = await self._get_challenge(claims.email)
        if (
            challenge is not None
            and challenge.state is RecoveryState.VERIFIED
            and challenge.reset_jti == claims.jti
        ):
            challenge.state = RecoveryState.EXPIRED
            challenge.reset_jti = None
            await self._session.commit()
            logger.info("Reset token expired for %s, challenge retired", claims.email)
