"""Account registration, login and session resolution.

Covers civil accounts (active on registration) and police accounts
(created PENDING through a corporation-scoped registration token and
approved by RH).

Session resolution turns a validated access token into a SessionContext,
loading the account and its corporation's flags. Only APPROVED police
accounts can hold a session; the first police account (id 1) is
bootstrapped with staff, RH and dev capabilities on first use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from sgprp.db.models import (
    Civil,
    Corporation,
    Policial,
    PolicialHistory,
    PolicialStatus,
    RegistrationToken,
)
from sgprp.services.context import RequestInfo, SessionContext
from sgprp.services.errors import (
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    PermissionDeniedError,
    WeakCredentialError,
)
from sgprp.services.passwords import hash_password, verify_password
from sgprp.services.permissions import (
    BOOTSTRAP_ACCOUNT_ID,
    BOOTSTRAP_CAPABILITIES,
    AccountType,
    Actor,
)
from sgprp.services.tokens import IssuedToken, TokenIssuer, token_prefix

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from sgprp.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Outcome of a successful login.

    Attributes:
        token: The issued access token.
        account: Public representation of the account.
    """

    token: IssuedToken
    account: dict[str, Any]


def civil_to_dict(civil: Civil) -> dict[str, Any]:
    return {
        "id": civil.id,
        "id_passaporte": civil.id_passaporte,
        "nome_completo": civil.nome_completo,
        "cargo": civil.cargo,
        "type": AccountType.CIVIL.value,
    }


def policial_to_dict(policial: Policial) -> dict[str, Any]:
    return {
        "id": policial.id,
        "passaporte": policial.passaporte,
        "nome_completo": policial.nome_completo,
        "patente": policial.patente,
        "corporacao": policial.corporacao,
        "divisao": policial.divisao,
        "permissoes": dict(policial.permissoes or {}),
        "type": AccountType.POLICIAL.value,
    }


class AccountService:
    """Registers, authenticates and resolves civil and police accounts."""

    def __init__(
        self,
        session: AsyncSession,
        issuer: TokenIssuer,
        *,
        min_password_length: int = 8,
        bcrypt_rounds: int = 10,
    ) -> None:
        self._session = session
        self._issuer = issuer
        self._min_password_length = min_password_length
        self._bcrypt_rounds = bcrypt_rounds

    @classmethod
    def from_settings(
        cls,
        session: AsyncSession,
        settings: Settings,
        *,
        issuer: TokenIssuer | None = None,
    ) -> AccountService:
        return cls(
            session,
            issuer or TokenIssuer.from_settings(settings),
            min_password_length=settings.security.min_password_length,
            bcrypt_rounds=settings.security.bcrypt_rounds,
        )

    # ------------------------------------------------------------------
    # Civil accounts
    # ------------------------------------------------------------------

    async def register_civil(
        self,
        *,
        id_passaporte: str,
        nome_completo: str,
        gmail: str,
        senha: str,
        telefone_rp: str | None = None,
    ) -> Civil:
        """Create a civil account.

        Raises:
            WeakCredentialError: Password below the minimum length.
            ConflictError: Passport or email already registered.
        """
        self._check_password(senha)
        existing = await self._session.execute(
            select(Civil.id).where(
                or_(Civil.id_passaporte == id_passaporte, Civil.gmail == gmail)
            )
        )
        if existing.first() is not None:
            raise ConflictError("Passport or email already registered")

        civil = Civil(
            id_passaporte=id_passaporte,
            nome_completo=nome_completo,
            telefone_rp=telefone_rp,
            gmail=gmail,
            senha_hash=hash_password(senha, rounds=self._bcrypt_rounds),
        )
        self._session.add(civil)
        await self._flush_unique("Passport or email already registered")
        await self._session.commit()

        logger.info("Civil account created: id=%d", civil.id)
        return civil

    async def login_civil(self, id_passaporte: str, senha: str) -> LoginResult:
        """Authenticate a civil account by passport and password.

        Raises:
            AuthenticationError: Unknown passport or wrong password.
        """
        result = await self._session.execute(
            select(Civil).where(Civil.id_passaporte == id_passaporte)
        )
        civil = result.scalar_one_or_none()
        if civil is None or not verify_password(senha, civil.senha_hash):
            logger.warning("Failed civil login for passport %s", id_passaporte)
            raise AuthenticationError(INVALID_CREDENTIALS)

        token = self._issuer.issue_access_token(civil.id, AccountType.CIVIL)
        logger.info("Civil login: id=%d", civil.id)
        return LoginResult(token=token, account=civil_to_dict(civil))

    # ------------------------------------------------------------------
    # Police accounts
    # ------------------------------------------------------------------

    async def register_policial(
        self,
        *,
        nome_completo: str,
        passaporte: str,
        discord_id: str,
        gmail: str,
        senha: str,
        registration_token: str,
        telefone_rp: str | None = None,
    ) -> Policial:
        """Create a PENDING police account by consuming a registration token.

        The token's use counter is incremented with a conditional update, so
        concurrent registrations can never exceed ``max_uses``.

        Raises:
            WeakCredentialError: Password below the minimum length.
            InvalidInputError: Token unknown, inactive, expired or exhausted.
            ConflictError: Passport, Discord id or email already registered.
        """
        self._check_password(senha)

        result = await self._session.execute(
            select(RegistrationToken).where(
                RegistrationToken.token == registration_token,
                RegistrationToken.is_active.is_(True),
            )
        )
        reg_token = result.scalar_one_or_none()
        if reg_token is None:
            raise InvalidInputError("Registration token is invalid or inactive")
        if reg_token.is_expired:
            raise InvalidInputError("Registration token has expired")
        if reg_token.remaining_uses <= 0:
            raise InvalidInputError("Registration token has reached its usage limit")

        await self._check_police_uniqueness(passaporte, discord_id, gmail)

        consumed = await self._session.execute(
            update(RegistrationToken)
            .where(
                RegistrationToken.id == reg_token.id,
                RegistrationToken.is_active.is_(True),
                RegistrationToken.use_count < RegistrationToken.max_uses,
            )
            .values(
                use_count=RegistrationToken.use_count + 1,
                used_at=datetime.now(UTC),
                is_active=RegistrationToken.use_count + 1 < RegistrationToken.max_uses,
            )
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            await self._session.rollback()
            raise InvalidInputError("Registration token has reached its usage limit")

        policial = Policial(
            nome_completo=nome_completo,
            passaporte=passaporte,
            discord_id=discord_id,
            telefone_rp=telefone_rp,
            gmail=gmail,
            senha_hash=hash_password(senha, rounds=self._bcrypt_rounds),
            status=PolicialStatus.PENDING,
            corporacao=reg_token.corporacao,
            permissoes={},
        )
        self._session.add(policial)
        await self._flush_unique("Passport, Discord ID or email already registered")

        self._session.add(
            PolicialHistory(
                policial_id=policial.id,
                tipo_evento="Criação de Conta",
                descricao=f"Conta criada via token para {reg_token.corporacao}.",
                data_evento=datetime.now(UTC),
            )
        )
        await self._session.commit()

        logger.info(
            "Police account registered: id=%d corporacao=%s token=%s...",
            policial.id,
            policial.corporacao,
            token_prefix(registration_token),
        )
        return policial

    async def login_policial(self, passaporte: str, senha: str) -> LoginResult:
        """Authenticate a police account.

        Raises:
            AuthenticationError: Unknown passport or wrong password.
            PermissionDeniedError: Account rejected or not yet approved.
        """
        result = await self._session.execute(
            select(Policial).where(Policial.passaporte == passaporte)
        )
        policial = result.scalar_one_or_none()
        if policial is None or not verify_password(senha, policial.senha_hash):
            logger.warning("Failed police login for passport %s", passaporte)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if policial.status is PolicialStatus.REJECTED:
            raise PermissionDeniedError("Your enlistment was rejected")
        if policial.status is not PolicialStatus.APPROVED:
            raise PermissionDeniedError("Your account is inactive or awaiting review")

        await self._bootstrap_if_needed(policial)
        token = self._issuer.issue_access_token(policial.id, AccountType.POLICIAL)
        logger.info("Police login: id=%d corporacao=%s", policial.id, policial.corporacao)
        return LoginResult(token=token, account=policial_to_dict(policial))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def resolve_session(
        self, token: str, request: RequestInfo | None = None
    ) -> SessionContext:
        """Build the session context for a bearer token.

        Raises:
            AuthenticationError: Token invalid or expired, account missing,
                or police account no longer approved.
        """
        claims = self._issuer.decode_access_token(token)
        request = request or RequestInfo()

        if claims.account_type is AccountType.CIVIL:
            civil = await self._session.get(Civil, claims.account_id)
            if civil is None:
                raise AuthenticationError("Account not found")
            return SessionContext(
                actor=Actor(account_id=civil.id, account_type=AccountType.CIVIL),
                nome_completo=civil.nome_completo,
                passaporte=civil.id_passaporte,
                gmail=civil.gmail,
                request=request,
            )

        policial = await self._session.get(Policial, claims.account_id)
        if policial is None or policial.status is not PolicialStatus.APPROVED:
            raise AuthenticationError("Account not found or not active")

        await self._bootstrap_if_needed(policial)
        corp_permissions = await self.corporation_permissions(policial.corporacao)
        return SessionContext(
            actor=Actor(
                account_id=policial.id,
                account_type=AccountType.POLICIAL,
                corporacao=policial.corporacao,
                permissoes=dict(policial.permissoes or {}),
            ),
            nome_completo=policial.nome_completo,
            passaporte=policial.passaporte,
            gmail=policial.gmail,
            corporation_permissions=corp_permissions,
            patente=policial.patente,
            divisao=policial.divisao,
            status=policial.status.value,
            request=request,
        )

    async def corporation_permissions(self, sigla: str | None) -> dict[str, Any]:
        """Flags of a corporation, empty when there is none."""
        if sigla is None:
            return {}
        result = await self._session.execute(
            select(Corporation.permissoes).where(Corporation.sigla == sigla)
        )
        return dict(result.scalar_one_or_none() or {})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _bootstrap_if_needed(self, policial: Policial) -> None:
        """Grant the bootstrap account its capabilities, persisting them once."""
        if policial.id != BOOTSTRAP_ACCOUNT_ID:
            return
        current = dict(policial.permissoes or {})
        if all(current.get(c.value) is True for c in BOOTSTRAP_CAPABILITIES):
            return

        policial.permissoes = {**current, **{c.value: True for c in BOOTSTRAP_CAPABILITIES}}
        await self._session.commit()
        logger.info("Bootstrap capabilities granted to policial %d", policial.id)

    def _check_password(self, senha: str) -> None:
        if len(senha) < self._min_password_length:
            raise WeakCredentialError(
                f"Password must have at least {self._min_password_length} characters"
            )

    async def _check_police_uniqueness(self, passaporte: str, discord_id: str, gmail: str) -> None:
        result = await self._session.execute(
            select(Policial.passaporte, Policial.discord_id, Policial.gmail).where(
                or_(
                    Policial.passaporte == passaporte,
                    Policial.discord_id == discord_id,
                    Policial.gmail == gmail,
                )
            )
        )
        row = result.first()
        if row is None:
            return
        if row.passaporte == passaporte:
            field = "Passport"
        elif row.discord_id == discord_id:
            field = "Discord ID"
        else:
            field = "Email"
        raise ConflictError(f"{field} already registered", detail={"field": field})

    async def _flush_unique(self, message: str) -> None:
        """Flush pending inserts, mapping unique violations to ConflictError."""
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            raise ConflictError(message) from e
