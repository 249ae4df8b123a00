"""Unit tests for the RBAC policy functions (no DB, no HTTP)."""
import uuid

import pytest

from cyberx_api.errors import AuthorizationError
from cyberx_api.services.rbac import (
    RESTRICTED_SELF_FIELDS,
    Principal,
    can_modify,
    has_role,
    is_admin,
    prevent_self_escalation,
    require_admin,
    require_roles,
)


def _principal(*roles: str) -> Principal:
    return Principal(id=uuid.uuid4(), email="p@x.com", name="P", roles=frozenset(roles))


@pytest.mark.parametrize("roles", [("admin",), ("super_admin",), ("viewer", "admin")])
def test_require_admin_allows_admin_roles(roles):
    require_admin(_principal(*roles))


@pytest.mark.parametrize("roles", [(), ("user",), ("viewer", "Admin")])
def test_require_admin_rejects_others(roles):
    with pytest.raises(AuthorizationError) as exc:
        require_admin(_principal(*roles))
    assert exc.value.code == "INSUFFICIENT_PERMISSIONS"
    assert exc.value.extra["required"] == ["admin", "super_admin"]
    assert exc.value.extra["current"] == sorted(roles)


def test_require_roles_any_of():
    require_roles(_principal("viewer"), {"user", "viewer"})
    with pytest.raises(AuthorizationError):
        require_roles(_principal("viewer"), {"user"})


def test_helpers():
    p = _principal("user")
    assert has_role(p, "user")
    assert not has_role(p, "admin")
    assert not is_admin(p)
    assert _principal("super_admin").is_admin


def test_can_modify_owner_and_admin():
    owner = _principal("user")
    decision = can_modify(owner.id, owner)
    assert decision.is_owner and not decision.is_admin

    admin = _principal("admin")
    decision = can_modify(owner.id, admin)
    assert decision.is_admin and not decision.is_owner


def test_can_modify_denies_other_user():
    with pytest.raises(AuthorizationError):
        can_modify(uuid.uuid4(), _principal("user"))


@pytest.mark.parametrize("field", RESTRICTED_SELF_FIELDS)
def test_self_escalation_blocked_for_non_admin(field):
    me = _principal("user")
    with pytest.raises(AuthorizationError) as exc:
        prevent_self_escalation(me.id, me, {"name", field})
    assert exc.value.code == "RESTRICTED_SELF_MODIFICATION"
    assert exc.value.extra["attemptedFields"] == [field]
    assert exc.value.extra["restrictedFields"] == list(RESTRICTED_SELF_FIELDS)


def test_self_escalation_allows_unrestricted_fields():
    me = _principal("user")
    prevent_self_escalation(me.id, me, {"name", "email", "password"})


def test_self_escalation_allows_admin_on_self():
    me = _principal("admin")
    prevent_self_escalation(me.id, me, {"is_active", "exercise_id"})


def test_self_escalation_ignores_other_targets():
    prevent_self_escalation(uuid.uuid4(), _principal("user"), {"is_active"})
