"""
Auth API: login (email + password -> API token) and current principal.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from cyberx_api.api.deps import get_current_principal, get_token_service
from cyberx_api.database import get_db
from cyberx_api.repositories.users import UserRepository
from cyberx_api.schemas.auth import LoginRequest, LoginResponse, LoginUser, MeResponse, PrincipalResponse
from cyberx_api.services.authenticator import Authenticator
from cyberx_api.services.rbac import Principal
from cyberx_api.services.tokens import TokenService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Exchange credentials for an API token. 401 bad credentials, 423 locked."""
    result = Authenticator(UserRepository(db), tokens).login(body.email, body.password, request=request)
    return LoginResponse(
        token=result.token,
        expires_in=result.expires_in,
        user=LoginUser(
            id=result.user.id,
            email=result.user.email,
            name=result.user.name,
            roles=result.roles,
            last_login_at=result.user.last_login_at,
        ),
    )


@router.get("/me", response_model=MeResponse)
def me(principal: Principal = Depends(get_current_principal)):
    """Current user as seen by the authorization layer (roles from current assignments)."""
    return MeResponse(
        user=PrincipalResponse(
            id=principal.id,
            email=principal.email,
            name=principal.name,
            roles=sorted(principal.roles),
            is_active=principal.is_active,
            exercise_id=principal.exercise_id,
        )
    )
