"""Password hashing with bcrypt."""

from __future__ import annotations

import bcrypt

# bcrypt only considers the first 72 bytes of input
BCRYPT_MAX_BYTES = 72
DEFAULT_ROUNDS = 10


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password for storage.

    Args:
        password: Plain text password.
        rounds: bcrypt cost factor.

    Returns:
        The bcrypt hash as a string.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
