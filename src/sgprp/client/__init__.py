"""Python client for the SGP-RP API.

- PortalClient: async httpx client with session teardown on 401/403
- AuthFlow: password recovery state machine
- CredentialStore implementations: in memory or JSON file
"""

from sgprp.client.api import PortalAPIError, PortalClient, SessionEndedError
from sgprp.client.flow import AuthFlow, AuthStep, InvalidTransitionError, PasswordMismatchError
from sgprp.client.store import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
    StoredCredentials,
)

__all__ = [
    "AuthFlow",
    "AuthStep",
    "CredentialStore",
    "FileCredentialStore",
    "InvalidTransitionError",
    "MemoryCredentialStore",
    "PasswordMismatchError",
    "PortalAPIError",
    "PortalClient",
    "SessionEndedError",
    "StoredCredentials",
]
