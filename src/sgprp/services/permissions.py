"""Permission gate for administrative actions.

This module provides:
- The typed capability vocabulary (is_rh, is_staff, is_dev, ...)
- CapabilitySet: the merged corporation + individual flags of an actor
- has_capability(): the single, central capability check
- PermissionGate: capability requirements plus corporation scoping

Scope rules:
- is_staff, is_city_admin and is_dev grant global administrative scope
- is_rh grants scope over the actor's own corporation and over targets
  with no corporation; an RH without a corporation is a general RH and
  has global scope
- civil accounts hold no capabilities
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sgprp.services.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


class AccountType(str, Enum):
    """Kind of account an actor authenticated as."""

    CIVIL = "civil"
    POLICIAL = "policial"


class Capability(str, Enum):
    """Named boolean permission flags.

    Values are the keys used in the stored permission maps.
    """

    IS_RH = "is_rh"
    IS_STAFF = "is_staff"
    IS_DEV = "is_dev"
    IS_CITY_ADMIN = "is_city_admin"
    PODE_ASSUMIR_BO = "podeAssumirBO"


# Capabilities that are not bound to the actor's corporation
GLOBAL_CAPABILITIES: frozenset[Capability] = frozenset(
    [Capability.IS_STAFF, Capability.IS_CITY_ADMIN, Capability.IS_DEV]
)

# Gate for the RH panel (/api/admin) and the audit log
ADMIN_PANEL_CAPABILITIES: frozenset[Capability] = GLOBAL_CAPABILITIES | {Capability.IS_RH}

# Gate for the Staff panel (/api/staff)
STAFF_PANEL_CAPABILITIES: frozenset[Capability] = GLOBAL_CAPABILITIES

# Granted to the bootstrap account (policial id 1)
BOOTSTRAP_ACCOUNT_ID = 1
BOOTSTRAP_CAPABILITIES: frozenset[Capability] = frozenset(
    [Capability.IS_STAFF, Capability.IS_RH, Capability.IS_DEV]
)

# Corporation value meaning "all corporations" in announcement targets
GENERAL_CORPORATION = "GERAL"


@dataclass(frozen=True, slots=True)
class Actor:
    """The subject of an authorization decision.

    Attributes:
        account_id: Id of the civil or police account.
        account_type: Which kind of account.
        corporacao: Corporation sigla, None for civil or general accounts.
        permissoes: Individual flag overrides stored on the account.
    """

    account_id: int
    account_type: AccountType
    corporacao: str | None = None
    permissoes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_policial(self) -> bool:
        return self.account_type is AccountType.POLICIAL


@dataclass(frozen=True, slots=True)
class CapabilitySet:
    """Immutable set of capabilities held by an actor."""

    granted: frozenset[Capability] = frozenset()

    @classmethod
    def from_maps(
        cls,
        corp_permissions: Mapping[str, Any] | None,
        overrides: Mapping[str, Any] | None,
    ) -> CapabilitySet:
        """Merge corporation-level flags with individual overrides.

        An individual override takes precedence over the corporation flag
        with the same key, whether it grants or revokes. Keys that are not
        known capabilities are ignored.
        """
        merged: dict[str, Any] = {**(corp_permissions or {}), **(overrides or {})}
        granted = set()
        for key, value in merged.items():
            try:
                capability = Capability(key)
            except ValueError:
                logger.debug("Ignoring unknown permission flag: %s", key)
                continue
            if value is True:
                granted.add(capability)
        return cls(frozenset(granted))

    def __contains__(self, capability: object) -> bool:
        return capability in self.granted

    def to_flags(self) -> dict[str, bool]:
        """Render as a permission map, e.g. for API responses."""
        return {c.value: True for c in sorted(self.granted, key=lambda c: c.value)}


def has_capability(
    actor: Actor,
    corp_permissions: Mapping[str, Any] | None,
    key: Capability | str,
) -> bool:
    """Check whether an actor holds a capability.

    Args:
        actor: The authenticated actor.
        corp_permissions: Flags of the actor's corporation.
        key: Capability to test.

    Returns:
        True if the merged flags grant the capability.

    Raises:
        ValueError: If ``key`` is not a known capability.
    """
    capability = Capability(key)
    return capability in capabilities_of(actor, corp_permissions)


def capabilities_of(actor: Actor, corp_permissions: Mapping[str, Any] | None) -> CapabilitySet:
    """Merged capabilities of an actor. Civil accounts hold none."""
    if not actor.is_policial:
        return CapabilitySet()
    return CapabilitySet.from_maps(corp_permissions, actor.permissoes)


class PermissionGate:
    """Evaluates capability requirements and corporation scope for an actor.

    Every check happens before any mutation; a failed ``require_*`` raises
    PermissionDeniedError.

    Example:
        gate = PermissionGate(actor, corp_permissions)
        gate.require_any(ADMIN_PANEL_CAPABILITIES)
        gate.require_corporation_access(target.corporacao)
    """

    def __init__(self, actor: Actor, corp_permissions: Mapping[str, Any] | None = None) -> None:
        self.actor = actor
        self._corp_permissions = dict(corp_permissions or {})
        self.capabilities = capabilities_of(actor, self._corp_permissions)

    def has(self, capability: Capability) -> bool:
        return has_capability(self.actor, self._corp_permissions, capability)

    def has_any(self, capabilities: Iterable[Capability]) -> bool:
        return any(self.has(c) for c in capabilities)

    @property
    def has_global_scope(self) -> bool:
        """Whether the actor may act on any corporation."""
        if self.has_any(GLOBAL_CAPABILITIES):
            return True
        return self.has(Capability.IS_RH) and self.actor.corporacao is None

    def can_access_corporation(self, corporacao: str | None) -> bool:
        """Check whether a target in ``corporacao`` is within the actor's scope.

        Targets with no corporation are reachable by any RH actor.
        """
        if self.has_global_scope:
            return True
        if not self.has(Capability.IS_RH):
            return False
        return corporacao is None or corporacao == self.actor.corporacao

    def scope_corporation(self) -> str | None:
        """Corporation listings must be restricted to, or None for no restriction."""
        if self.has_global_scope:
            return None
        return self.actor.corporacao

    def require(self, capability: Capability, message: str | None = None) -> None:
        """Require a single capability."""
        self.require_any([capability], message)

    def require_any(
        self, capabilities: Iterable[Capability], message: str | None = None
    ) -> None:
        """Require at least one of the capabilities.

        Raises:
            PermissionDeniedError: If none is held.
        """
        wanted = frozenset(capabilities)
        if self.has_any(wanted):
            return
        logger.warning(
            "Permission denied for %s %d: requires one of %s",
            self.actor.account_type.value,
            self.actor.account_id,
            ", ".join(sorted(c.value for c in wanted)),
        )
        raise PermissionDeniedError(
            message or "Access denied",
            detail={"required": sorted(c.value for c in wanted)},
        )

    def require_corporation_access(self, corporacao: str | None) -> None:
        """Require that a target corporation is within scope.

        Raises:
            PermissionDeniedError: If the target belongs to another corporation.
        """
        if self.can_access_corporation(corporacao):
            return
        logger.warning(
            "Cross-corporation access denied: actor %d (%s) -> %s",
            self.actor.account_id,
            self.actor.corporacao,
            corporacao,
        )
        raise PermissionDeniedError("Target belongs to another corporation")
