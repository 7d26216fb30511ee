"""Per-request session context.

A SessionContext is built once per authenticated request from the bearer
token and the current database state, and passed explicitly to every
service call that needs to know who is acting.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sgprp.services.permissions import AccountType, Actor, PermissionGate


@dataclass(frozen=True, slots=True)
class RequestInfo:
    """Request metadata recorded alongside administrative actions.

    Attributes:
        ip_address: Client IP address.
        user_agent: HTTP User-Agent header.
        request_id: Correlation id of the request.
    """

    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class SessionContext:
    """The authenticated actor of one request.

    Attributes:
        actor: Identity and individual permission overrides.
        nome_completo: Display name.
        passaporte: Passport number.
        gmail: Account email.
        corporation_permissions: Flags of the actor's corporation.
        patente: Rank name, police accounts only.
        divisao: Division name, police accounts only.
        status: Account status label, police accounts only.
        request: Metadata of the current request.
    """

    actor: Actor
    nome_completo: str
    passaporte: str
    gmail: str
    corporation_permissions: Mapping[str, Any] = field(default_factory=dict)
    patente: str | None = None
    divisao: str | None = None
    status: str | None = None
    request: RequestInfo = field(default_factory=RequestInfo)

    @property
    def account_id(self) -> int:
        return self.actor.account_id

    @property
    def account_type(self) -> AccountType:
        return self.actor.account_type

    @property
    def corporacao(self) -> str | None:
        return self.actor.corporacao

    @property
    def ip_address(self) -> str | None:
        return self.request.ip_address

    @property
    def gate(self) -> PermissionGate:
        """Permission gate for this actor."""
        return PermissionGate(self.actor, self.corporation_permissions)

    def to_dict(self) -> dict[str, Any]:
        """Public representation, as returned by ``/api/auth/me``."""
        data: dict[str, Any] = {
            "id": self.account_id,
            "type": self.account_type.value,
            "nome_completo": self.nome_completo,
            "passaporte": self.passaporte,
            "gmail": self.gmail,
        }
        if self.actor.is_policial:
            data.update(
                {
                    "corporacao": self.corporacao,
                    "patente": self.patente,
                    "divisao": self.divisao,
                    "status": self.status,
                    "permissoes": self.gate.capabilities.to_flags(),
                }
            )
        return data
