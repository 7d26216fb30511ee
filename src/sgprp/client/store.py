"""Client-side credential storage.

A CredentialStore holds the bearer token of the signed-in account. The
PortalClient reads it to authenticate requests and clears it when the
server ends the session.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredCredentials:
    """Bearer token and the account it belongs to.

    Attributes:
        token: Access token for the Authorization header.
        account_type: "civil" or "policial".
        expires_at: Token expiry, when known.
        account: Public account data returned at login.
    """

    token: str
    account_type: str
    expires_at: datetime | None = None
    account: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        data = asdict(self)
        data["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return data

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> StoredCredentials:
        expires_at = data.get("expires_at")
        return cls(
            token=data["token"],
            account_type=data["account_type"],
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            account=dict(data.get("account") or {}),
        )


class CredentialStore(Protocol):
    """Where the client keeps its credentials between calls."""

    def get(self) -> StoredCredentials | None: ...

    def set(self, credentials: StoredCredentials) -> None: ...

    def clear(self) -> None: ...


class MemoryCredentialStore:
    """Keeps credentials for the lifetime of the process."""

    def __init__(self, credentials: StoredCredentials | None = None) -> None:
        self._credentials = credentials

    def get(self) -> StoredCredentials | None:
        return self._credentials

    def set(self, credentials: StoredCredentials) -> None:
        self._credentials = credentials

    def clear(self) -> None:
        self._credentials = None


class FileCredentialStore:
    """Persists credentials as a JSON file.

    An unreadable or malformed file is treated as "no credentials" and
    removed on the next clear().
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> StoredCredentials | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoredCredentials.from_json(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, e)
            return None

    def set(self, credentials: StoredCredentials) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(credentials.to_json()), encoding="utf-8")
        self._path.chmod(0o600)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
