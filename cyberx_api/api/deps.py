"""
Shared dependencies: authenticated Principal from the API Bearer token, role guards,
ownership guard, and documentation-token guard.
Every rejection is written to the security audit log before the error propagates.
"""
import logging
from typing import Any
from uuid import UUID

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cyberx_api import audit
from cyberx_api.config import settings
from cyberx_api.database import get_db
from cyberx_api.errors import (
    AccountLockedError,
    ApiError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    InactiveAccountError,
    TokenExpiredError,
)
from cyberx_api.models.types import utcnow
from cyberx_api.repositories.users import UserRepository
from cyberx_api.schemas.common import PaginationQuery
from cyberx_api.services import rbac
from cyberx_api.services.rbac import AccessDecision, Principal
from cyberx_api.services.tokens import TokenService

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


def get_token_service() -> TokenService:
    return TokenService(settings)


def _bearer_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    return (getattr(credentials, "credentials", None) or "").strip()


def _token_failure_level(exc: ApiError) -> str:
    if isinstance(exc, ConfigurationError):
        return "none"
    if isinstance(exc, TokenExpiredError):
        return "low"
    return "medium"


def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Principal:
    """Require a valid API token for an existing, active, unlocked user. Roles come from current assignments."""
    token = _bearer_token(credentials)
    if not token:
        audit.security_event("auth_missing_token", threat_level="medium", request=request)
        raise AuthenticationError("Access token is missing")

    try:
        claims = tokens.verify_api_token(token)
    except ApiError as e:
        audit.security_event(
            "auth_token_rejected", threat_level=_token_failure_level(e), request=request, code=e.code
        )
        raise

    users = UserRepository(db)
    user_id = UUID(claims["sub"])
    user = users.find_by_id(user_id)
    if user is None or not user.is_active:
        audit.security_event("auth_inactive_user", threat_level="medium", request=request, user_id=user_id)
        raise InactiveAccountError("User account is inactive or no longer exists")

    now = utcnow()
    if user.is_locked(now):
        audit.security_event("auth_locked_user", threat_level="medium", request=request, user_id=user_id)
        raise AccountLockedError("Account is temporarily locked due to too many failed login attempts", user.locked_until)

    principal = Principal(
        id=user.id,
        email=user.email,
        name=user.name,
        roles=frozenset(users.effective_role_names(user.id, now)),
        is_active=user.is_active,
        exercise_id=user.exercise_id,
    )
    request.state.principal = principal
    return principal


def require_roles(*role_names: str):
    """Dependency factory: allow principals holding at least one of role_names."""
    allowed = frozenset(name.lower() for name in role_names)

    def dependency(request: Request, principal: Principal = Depends(get_current_principal)) -> Principal:
        try:
            rbac.require_roles(principal, allowed)
        except AuthorizationError:
            audit.security_event(
                "authz_insufficient_role",
                threat_level="medium",
                request=request,
                user_id=principal.id,
                required=",".join(sorted(allowed)),
                current=",".join(sorted(principal.roles)),
            )
            raise
        return principal

    return dependency


require_admin = require_roles(*rbac.ADMIN_ROLES)


def can_modify_user(
    user_id: UUID,
    request: Request,
    principal: Principal = Depends(get_current_principal),
) -> AccessDecision:
    """Admins may act on any user; others only on themselves (user_id path parameter)."""
    try:
        decision = rbac.can_modify(user_id, principal)
    except AuthorizationError:
        audit.security_event(
            "authz_not_owner", threat_level="medium", request=request, user_id=principal.id, target_id=user_id
        )
        raise
    request.state.access = decision
    return decision


def verify_docs_access(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token: str | None = Query(None, include_in_schema=False),
    tokens: TokenService = Depends(get_token_service),
) -> dict[str, Any]:
    """Require a documentation token (Bearer header, or ?token= so the Swagger UI page can fetch the schema)."""
    raw = _bearer_token(credentials) or (token or "").strip()
    if not raw:
        audit.security_event("docs_missing_token", threat_level="medium", request=request)
        raise AuthenticationError("Access token is missing")
    try:
        claims = tokens.verify_docs_token(raw)
    except ApiError as e:
        audit.security_event(
            "docs_token_rejected", threat_level=_token_failure_level(e), request=request, code=e.code
        )
        raise
    request.state.docs_token = raw
    logger.info("Documentation access granted: %s", request.url.path)
    return claims


def guard_self_escalation(
    request: Request, target_id: UUID, principal: Principal, requested_fields
) -> None:
    """Reject a non-admin setting restricted fields on their own account."""
    try:
        rbac.prevent_self_escalation(target_id, principal, requested_fields)
    except AuthorizationError as e:
        audit.security_event(
            "authz_self_escalation",
            threat_level="high",
            request=request,
            user_id=principal.id,
            attempted=",".join(e.extra.get("attemptedFields", [])),
        )
        raise


async def guard_self_update(
    user_id: UUID,
    request: Request,
    access: AccessDecision = Depends(can_modify_user),
    principal: Principal = Depends(get_current_principal),
) -> AccessDecision:
    """Ownership plus the self-escalation check on the raw JSON keys, before the body is validated.

    A restricted field is refused whatever its value, so a malformed one still gets 403, not 400.
    """
    try:
        payload = await request.json() if await request.body() else None
    except ValueError:
        # Not JSON; body validation reports it
        payload = None
    requested = payload.keys() if isinstance(payload, dict) else ()
    guard_self_escalation(request, user_id, principal, requested)
    return access


def visible_page(page: PaginationQuery, principal: Principal) -> PaginationQuery:
    """Soft-deleted rows are listed for admins only."""
    if page.include_deleted and not principal.is_admin:
        return page.model_copy(update={"include_deleted": False})
    return page
