"""Tests for the permission gate.

Tests cover:
- Merging corporation flags with individual overrides
- The central has_capability() check
- Global vs corporation scope for RH, staff and developers
- Denials raising PermissionDeniedError with the required capabilities
"""

import pytest

from sgprp.services import permissions
from sgprp.services.errors import PermissionDeniedError
from sgprp.services.permissions import (
    ADMIN_PANEL_CAPABILITIES,
    STAFF_PANEL_CAPABILITIES,
    AccountType,
    Actor,
    Capability,
    CapabilitySet,
    PermissionGate,
    has_capability,
)


def police(corporacao: str | None = "PM", **flags) -> Actor:
    return Actor(
        account_id=7, account_type=AccountType.POLICIAL, corporacao=corporacao, permissoes=flags
    )


def civil() -> Actor:
    return Actor(account_id=3, account_type=AccountType.CIVIL)


class TestCapabilitySet:
    """Tests for merging permission maps."""

    def test_corporation_flags_are_inherited(self):
        caps = CapabilitySet.from_maps({"podeAssumirBO": True}, {})

        assert Capability.PODE_ASSUMIR_BO in caps

    def test_individual_override_revokes_corporation_flag(self):
        caps = CapabilitySet.from_maps({"podeAssumirBO": True}, {"podeAssumirBO": False})

        assert Capability.PODE_ASSUMIR_BO not in caps

    def test_individual_override_grants(self):
        caps = CapabilitySet.from_maps({}, {"is_rh": True})

        assert Capability.IS_RH in caps

    def test_unknown_stored_keys_are_ignored(self):
        caps = CapabilitySet.from_maps({"legacy_flag": True}, {"is_dev": True})

        assert caps.granted == frozenset({Capability.IS_DEV})

    def test_only_literal_true_grants(self):
        """Truthy strings stored by older clients do not grant anything."""
        caps = CapabilitySet.from_maps({}, {"is_staff": "true", "is_rh": 1})

        assert caps.granted == frozenset()

    def test_to_flags(self):
        caps = CapabilitySet.from_maps({}, {"is_rh": True, "is_dev": True, "is_staff": False})

        assert caps.to_flags() == {"is_dev": True, "is_rh": True}


class TestHasCapability:
    """Tests for the central capability check."""

    def test_police_actor_with_flag(self):
        assert has_capability(police(is_rh=True), {}, Capability.IS_RH)

    def test_accepts_string_keys(self):
        assert has_capability(police(), {"podeAssumirBO": True}, "podeAssumirBO")

    def test_police_actor_without_flag(self):
        assert not has_capability(police(), {}, Capability.IS_STAFF)

    def test_civil_actor_holds_nothing(self):
        """Flags on a civil actor are never honoured."""
        actor = Actor(account_id=3, account_type=AccountType.CIVIL, permissoes={"is_staff": True})

        assert not has_capability(actor, {"is_staff": True}, Capability.IS_STAFF)

    def test_unknown_key_raises(self):
        with pytest.raises(ValueError):
            has_capability(police(), {}, "is_superuser")

    @pytest.mark.parametrize(
        ("actor", "corp_permissions"),
        [
            (police(podeAssumirBO=False), {"podeAssumirBO": True}),
            (police(is_rh=True), {}),
            (police(None, is_staff=True), {"is_rh": True}),
            (Actor(account_id=3, account_type=AccountType.CIVIL, permissoes={"is_rh": True}), {}),
        ],
    )
    def test_gate_agrees_with_central_check(self, actor, corp_permissions):
        gate = PermissionGate(actor, corp_permissions)

        for capability in Capability:
            assert gate.has(capability) == has_capability(actor, corp_permissions, capability)

    def test_gate_decisions_go_through_central_check(self, monkeypatch):
        checked = []
        central = permissions.has_capability

        def recording(actor, corp_permissions, key):
            checked.append(Capability(key))
            return central(actor, corp_permissions, key)

        monkeypatch.setattr(permissions, "has_capability", recording)
        gate = PermissionGate(police(is_rh=True), {})

        gate.require_any(ADMIN_PANEL_CAPABILITIES)

        assert Capability.IS_RH in checked


class TestScope:
    """Tests for corporation scoping."""

    @pytest.mark.parametrize("flag", ["is_staff", "is_city_admin", "is_dev"])
    def test_global_capabilities_reach_every_corporation(self, flag):
        gate = PermissionGate(police(**{flag: True}))

        assert gate.has_global_scope
        assert gate.can_access_corporation("PC")
        assert gate.scope_corporation() is None

    def test_rh_is_limited_to_own_corporation(self):
        gate = PermissionGate(police("PM", is_rh=True))

        assert not gate.has_global_scope
        assert gate.can_access_corporation("PM")
        assert not gate.can_access_corporation("PC")
        assert gate.scope_corporation() == "PM"

    def test_rh_reaches_targets_without_corporation(self):
        gate = PermissionGate(police("PM", is_rh=True))

        assert gate.can_access_corporation(None)

    def test_rh_without_corporation_is_general(self):
        gate = PermissionGate(police(None, is_rh=True))

        assert gate.has_global_scope
        assert gate.can_access_corporation("PC")

    def test_plain_officer_reaches_nothing(self):
        gate = PermissionGate(police("PM"))

        assert not gate.can_access_corporation("PM")
        assert not gate.can_access_corporation(None)


class TestRequire:
    """Tests for gate requirements."""

    def test_rh_passes_admin_panel(self):
        PermissionGate(police(is_rh=True)).require_any(ADMIN_PANEL_CAPABILITIES)

    def test_rh_fails_staff_panel(self):
        gate = PermissionGate(police(is_rh=True))

        with pytest.raises(PermissionDeniedError) as exc_info:
            gate.require_any(STAFF_PANEL_CAPABILITIES, "Staff only")

        assert exc_info.value.message == "Staff only"
        assert exc_info.value.detail == {"required": ["is_city_admin", "is_dev", "is_staff"]}

    def test_civil_fails_admin_panel(self):
        with pytest.raises(PermissionDeniedError):
            PermissionGate(civil()).require_any(ADMIN_PANEL_CAPABILITIES)

    def test_require_single_capability(self):
        gate = PermissionGate(police(), {"podeAssumirBO": True})

        gate.require(Capability.PODE_ASSUMIR_BO)
        with pytest.raises(PermissionDeniedError):
            gate.require(Capability.IS_RH)

    def test_cross_corporation_access_denied(self):
        gate = PermissionGate(police("PM", is_rh=True))

        gate.require_corporation_access("PM")
        with pytest.raises(PermissionDeniedError, match="another corporation"):
            gate.require_corporation_access("PC")
