"""Token issuer for access, reset and registration credentials.

This module mints every short-lived credential the portal hands out:
- Access tokens: HS256 JWTs carrying the account id and account type
- Reset tokens: JWTs scoped to the password-reset flow, identified by a
  ``jti`` that the recovery challenge records so each token works once
- Recovery codes: 6-digit codes, stored only as SHA-256 hashes
- Registration tokens: opaque 256-bit hex strings

Secrets never leave this module in logs; registration tokens are only
ever referred to by their first characters.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from jose import ExpiredSignatureError, JWTError, jwt

from sgprp.services.errors import AuthenticationError, InvalidResetTokenError
from sgprp.services.permissions import AccountType

if TYPE_CHECKING:
    from sgprp.core.config import Settings

logger = logging.getLogger(__name__)

RECOVERY_CODE_DIGITS = 6
REGISTRATION_TOKEN_BYTES = 32  # 256 bits, 64 hex chars
RESET_TOKEN_TYPE = "password_reset"
TOKEN_PREFIX_LENGTH = 8


@dataclass(frozen=True, slots=True)
class IssuedToken:
    """A freshly minted bearer token.

    Attributes:
        token: The encoded token handed to the client.
        expires_at: When the token stops being accepted.
        jti: Unique token id, when the token kind has one.
    """

    token: str
    expires_at: datetime
    jti: str | None = None


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """Decoded access token claims."""

    account_id: int
    account_type: AccountType
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class ResetClaims:
    """Decoded reset token claims."""

    email: str
    jti: str
    expires_at: datetime


class ExpiredResetTokenError(InvalidResetTokenError):
    """Reset token was validly signed but is past its expiry.

    The decoded claims are kept so the caller can retire the challenge
    the token belonged to.
    """

    def __init__(self, message: str, claims: ResetClaims) -> None:
        self.claims = claims
        super().__init__(message)


def generate_recovery_code() -> str:
    """Generate a uniformly random zero-padded 6-digit code."""
    return f"{secrets.randbelow(10**RECOVERY_CODE_DIGITS):0{RECOVERY_CODE_DIGITS}d}"


def hash_secret(value: str) -> str:
    """SHA-256 hex digest used to store codes at rest."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def secret_matches(value: str, expected_hash: str) -> bool:
    """Constant-time comparison of a submitted secret against its stored hash."""
    return hmac.compare_digest(hash_secret(value), expected_hash)


def generate_registration_token() -> str:
    """Generate an opaque registration token."""
    return secrets.token_hex(REGISTRATION_TOKEN_BYTES)


def token_prefix(token: str) -> str:
    """Loggable prefix of a token."""
    return token[:TOKEN_PREFIX_LENGTH]


class TokenIssuer:
    """Mints and validates signed tokens.

    Example:
        issuer = TokenIssuer.from_settings(settings)
        issued = issuer.issue_access_token(42, AccountType.POLICIAL)
        claims = issuer.decode_access_token(issued.token)
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        civil_token_hours: int = 12,
        police_token_hours: int = 24,
        reset_token_minutes: int = 15,
    ) -> None:
        """Initialize the issuer.

        Args:
            secret: HMAC signing secret.
            algorithm: JWT algorithm (HS256/384/512).
            civil_token_hours: Lifetime of civil access tokens.
            police_token_hours: Lifetime of police access tokens.
            reset_token_minutes: Lifetime of password reset tokens.
        """
        if not secret:
            msg = "Token signing secret must not be empty"
            raise ValueError(msg)
        self._secret = secret
        self._algorithm = algorithm
        self._access_lifetimes = {
            AccountType.CIVIL: timedelta(hours=civil_token_hours),
            AccountType.POLICIAL: timedelta(hours=police_token_hours),
        }
        self._reset_lifetime = timedelta(minutes=reset_token_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        """Build an issuer from application settings."""
        return cls(
            settings.security.jwt_secret.get_secret_value(),
            algorithm=settings.security.jwt_algorithm,
            civil_token_hours=settings.security.civil_token_hours,
            police_token_hours=settings.security.police_token_hours,
            reset_token_minutes=settings.recovery.reset_token_ttl_minutes,
        )

    # ------------------------------------------------------------------
    # Access tokens
    # ------------------------------------------------------------------

    def issue_access_token(self, account_id: int, account_type: AccountType) -> IssuedToken:
        """Issue a session bearer token for an account.

        Args:
            account_id: Id of the civil or police account.
            account_type: Which table the id refers to.

        Returns:
            The issued token and its expiry.
        """
        now = datetime.now(UTC)
        expires_at = now + self._access_lifetimes[account_type]
        claims = {
            "sub": str(account_id),
            "type": account_type.value,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return IssuedToken(token=self._encode(claims), expires_at=expires_at)

    def decode_access_token(self, token: str) -> AccessClaims:
        """Validate an access token.

        Raises:
            AuthenticationError: If the token is malformed, forged, expired
                or not an access token.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise AuthenticationError("Session expired") from e
        except JWTError as e:
            raise AuthenticationError("Invalid token") from e

        try:
            account_type = AccountType(claims.get("type"))
            account_id = int(claims["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError("Invalid token") from e

        return AccessClaims(
            account_id=account_id,
            account_type=account_type,
            expires_at=datetime.fromtimestamp(claims["exp"], UTC),
        )

    # ------------------------------------------------------------------
    # Reset tokens
    # ------------------------------------------------------------------

    def issue_reset_token(self, email: str) -> IssuedToken:
        """Issue a reset-scoped token for an email.

        Returns:
            The issued token, its expiry and its ``jti``.
        """
        now = datetime.now(UTC)
        expires_at = now + self._reset_lifetime
        jti = secrets.token_urlsafe(24)
        claims = {
            "sub": email,
            "type": RESET_TOKEN_TYPE,
            "jti": jti,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return IssuedToken(token=self._encode(claims), expires_at=expires_at, jti=jti)

    def decode_reset_token(self, token: str) -> ResetClaims:
        """Validate a reset token's signature, scope and expiry.

        Raises:
            ExpiredResetTokenError: If the token is authentic but expired.
            InvalidResetTokenError: For any other defect.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            expired = self._decode_unverified_expiry(token)
            raise ExpiredResetTokenError("Reset token expired", expired) from e
        except JWTError as e:
            raise InvalidResetTokenError("Invalid reset token") from e

        return self._reset_claims(claims)

    def _decode_unverified_expiry(self, token: str) -> ResetClaims:
        """Decode an expired reset token, still checking its signature."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidResetTokenError("Invalid reset token") from e
        return self._reset_claims(claims)

    def _reset_claims(self, claims: dict[str, Any]) -> ResetClaims:
        if claims.get("type") != RESET_TOKEN_TYPE:
            raise InvalidResetTokenError("Token is not a password reset token")
        email = claims.get("sub")
        jti = claims.get("jti")
        if not email or not jti or "exp" not in claims:
            raise InvalidResetTokenError("Invalid reset token")
        return ResetClaims(
            email=email,
            jti=jti,
            expires_at=datetime.fromtimestamp(claims["exp"], UTC),
        )

    def _encode(self, claims: dict[str, Any]) -> str:
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)
