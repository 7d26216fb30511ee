"""Service-layer exception taxonomy.

Every failure a service can report to a caller derives from ServiceError
and carries a machine-readable ``error`` code. The API layer maps each
class to an HTTP status (see ``sgprp.api.middleware.errors``).
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base exception for expected, per-request service failures."""

    error = "service_error"

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class AuthenticationError(ServiceError):
    """Missing, invalid or expired credentials."""

    error = "unauthorized"


class PermissionDeniedError(ServiceError):
    """Authenticated, but not allowed to perform the action."""

    error = "forbidden"


class InvalidInputError(ServiceError):
    """Malformed or semantically invalid input."""

    error = "validation_error"


class ResourceNotFoundError(ServiceError):
    """Target resource does not exist (or is no longer in a usable state)."""

    error = "not_found"


class ConflictError(ServiceError):
    """Write would violate a uniqueness or state constraint."""

    error = "conflict"


# ---------------------------------------------------------------------------
# Recovery flow failures
# ---------------------------------------------------------------------------


class InvalidCodeError(InvalidInputError):
    """Submitted recovery code does not match an open challenge."""

    error = "invalid_code"


class ExpiredChallengeError(InvalidInputError):
    """Recovery code was submitted after its validity window."""

    error = "expired_challenge"


class InvalidResetTokenError(InvalidInputError):
    """Reset token is unsigned, expired, of the wrong kind or already used."""

    error = "invalid_reset_token"


class WeakCredentialError(InvalidInputError):
    """New password does not meet the minimum requirements."""

    error = "weak_credential"
