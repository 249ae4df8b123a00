"""
Login state machine: credentials in, API token + public profile out.

Checks run in a fixed order and stop at the first failure:
  unknown email -> 401, locked -> 423 (no increment), inactive -> 401,
  wrong password -> atomic increment (lock at MAX_FAILED_ATTEMPTS) then 401,
  success -> reset lockout bookkeeping, stamp last_login_at, issue token.
Input shape (email format, password length) is validated earlier by LoginRequest.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from cyberx_api import audit
from cyberx_api.errors import AccountLockedError, AuthenticationError
from cyberx_api.models.types import utcnow
from cyberx_api.models.user import User
from cyberx_api.repositories.users import UserRepository
from cyberx_api.services.passwords import verify_password
from cyberx_api.services.tokens import TokenService

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=30)

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class LoginResult:
    token: str
    expires_in: str
    user: User
    roles: list[str]


class Authenticator:
    def __init__(self, users: UserRepository, tokens: TokenService):
        self.users = users
        self.tokens = tokens

    def login(self, email: str, password: str, *, now: datetime | None = None, request=None) -> LoginResult:
        now = now or utcnow()
        user = self.users.find_by_email(email)
        if user is None:
            audit.security_event("login_failed", threat_level="low", request=request, reason="unknown_email")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.is_locked(now):
            audit.security_event(
                "login_blocked_locked", threat_level="medium", request=request,
                user_id=user.id, locked_until=user.locked_until.isoformat(),
            )
            raise AccountLockedError(
                "Account is temporarily locked due to too many failed login attempts",
                user.locked_until,
            )

        if not user.is_active:
            audit.security_event("login_failed", threat_level="low", request=request, user_id=user.id, reason="inactive")
            raise AuthenticationError("Account is inactive")

        if not verify_password(password, user.password_hash):
            user = self.users.register_failed_login(
                user.id, now=now, max_attempts=MAX_FAILED_ATTEMPTS, lockout=LOCKOUT_DURATION
            )
            attempts = user.failed_login_attempts if user is not None else None
            locked = user is not None and user.is_locked(now)
            audit.security_event(
                "account_locked" if locked else "login_failed",
                threat_level="high" if locked else "medium",
                request=request,
                user_id=user.id if user is not None else None,
                reason="bad_password",
                failed_attempts=attempts,
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        # Read the secret before mutating state so a config error leaves the account untouched.
        self.tokens.api_secret()
        user = self.users.record_successful_login(user, now)
        roles = self.users.effective_role_names(user.id, now)
        token = self.tokens.issue_api_token(
            user_id=user.id, email=user.email, name=user.name, roles=roles, now=now
        )
        audit.security_event("login_success", request=request, user_id=user.id, roles=",".join(roles))
        logger.info("User %s logged in", user.id)
        return LoginResult(token=token, expires_in=self.tokens.expires_in, user=user, roles=roles)
