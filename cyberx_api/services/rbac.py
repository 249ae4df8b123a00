"""
RBAC policy: pure decisions over an authenticated Principal. No I/O, no logging; the FastAPI
dependencies in api/deps.py call these, log the outcome and attach the results to the request.
"""
from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID

from cyberx_api.errors import AuthorizationError

ADMIN_ROLES = frozenset({"admin", "super_admin"})

# Fields a non-admin may not change on their own account through a general update.
RESTRICTED_SELF_FIELDS = ("is_active", "exercise_id", "failed_login_attempts", "locked_until")


@dataclass(frozen=True)
class Principal:
    """Authenticated user for the current request, built from current DB state."""
    id: UUID
    email: str
    name: str
    roles: frozenset[str] = field(default_factory=frozenset)
    is_active: bool = True
    exercise_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return is_admin(self)


@dataclass(frozen=True)
class AccessDecision:
    """Result of can_modify: handlers branch on these (e.g. owners may view but not set protected fields)."""
    is_admin: bool
    is_owner: bool


def has_role(principal: Principal, role_name: str) -> bool:
    return role_name in principal.roles


def is_admin(principal: Principal) -> bool:
    return bool(principal.roles & ADMIN_ROLES)


def require_roles(principal: Principal, allowed: Iterable[str]) -> None:
    """Allow iff the principal holds at least one of allowed."""
    allowed_set = frozenset(allowed)
    if principal.roles & allowed_set:
        return
    raise AuthorizationError(
        "Insufficient permissions",
        extra={"required": sorted(allowed_set), "current": sorted(principal.roles)},
    )


def require_admin(principal: Principal) -> None:
    require_roles(principal, ADMIN_ROLES)


def can_modify(target_id: UUID, principal: Principal) -> AccessDecision:
    """Admins may modify anyone; everyone else only themselves."""
    decision = AccessDecision(is_admin=is_admin(principal), is_owner=principal.id == target_id)
    if not (decision.is_admin or decision.is_owner):
        raise AuthorizationError(
            "You can only modify your own account or you need admin privileges",
        )
    return decision


def restricted_fields_in(requested_fields: Iterable[str]) -> list[str]:
    requested = set(requested_fields)
    return [f for f in RESTRICTED_SELF_FIELDS if f in requested]


def prevent_self_escalation(target_id: UUID, principal: Principal, requested_fields: Iterable[str]) -> None:
    """Reject a non-admin changing restricted fields on their own record."""
    if principal.id != target_id or is_admin(principal):
        return
    attempted = restricted_fields_in(requested_fields)
    if attempted:
        raise AuthorizationError(
            "You cannot modify these fields on your own account",
            code="RESTRICTED_SELF_MODIFICATION",
            extra={"restrictedFields": list(RESTRICTED_SELF_FIELDS), "attemptedFields": attempted},
        )
