"""
JWT issuance and verification for two independent signing domains:
  - API tokens (JWT_SECRET): issued at login, carry principal id, email, name, role names.
  - Documentation tokens (JWT_SWAGGER_SECRET): issued for a shared secret, gate Swagger UI / OpenAPI.
Expired and malformed tokens raise different errors so callers can report them separately.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Iterable
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from cyberx_api.config import Settings, settings as default_settings
from cyberx_api.errors import ConfigurationError, InvalidTokenError, TokenExpiredError
from cyberx_api.models.types import utcnow

logger = logging.getLogger(__name__)

DOCS_SUBJECT = "swagger-user"
DOCS_PURPOSE = "swagger-documentation"


class TokenService:
    def __init__(self, config: Settings | None = None):
        self._settings = config or default_settings

    @property
    def expires_in(self) -> str:
        return self._settings.jwt_expires_in

    def _lifetime(self) -> timedelta:
        return timedelta(hours=self._settings.jwt_expire_hours)

    def api_secret(self) -> str:
        secret = self._settings.jwt_secret
        if not secret:
            logger.error("JWT_SECRET not configured")
            raise ConfigurationError("JWT configuration not set up")
        return secret

    def docs_secret(self) -> str:
        secret = self._settings.jwt_swagger_secret
        if secret:
            return secret
        if self._settings.jwt_swagger_allow_api_secret and self._settings.jwt_secret:
            # Explicit opt-in; both token domains now share one key.
            logger.warning(
                "JWT_SWAGGER_SECRET not set; signing documentation tokens with JWT_SECRET "
                "(JWT_SWAGGER_ALLOW_API_SECRET=true)"
            )
            return self._settings.jwt_secret
        logger.error("JWT_SWAGGER_SECRET not configured")
        raise ConfigurationError("JWT configuration not set up")

    def _encode(self, claims: dict[str, Any], secret: str, now: datetime | None) -> str:
        issued = now or utcnow()
        # JWT iat/exp must be numeric (Unix timestamp), not datetime
        payload = {
            **claims,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self._lifetime()).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=self._settings.jwt_algorithm)

    def _decode(self, token: str, secret: str) -> dict[str, Any]:
        try:
            return jwt.decode(token, secret, algorithms=[self._settings.jwt_algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError("Invalid token") from e

    def issue_api_token(
        self,
        *,
        user_id: UUID,
        email: str,
        name: str,
        roles: Iterable[str],
        now: datetime | None = None,
    ) -> str:
        claims = {"sub": str(user_id), "email": email, "name": name, "roles": sorted(roles)}
        return self._encode(claims, self.api_secret(), now)

    def verify_api_token(self, token: str) -> dict[str, Any]:
        """Return claims of a valid API token. Documentation tokens are rejected even if the keys match."""
        claims = self._decode(token, self.api_secret())
        if claims.get("purpose") or not claims.get("sub"):
            raise InvalidTokenError("Invalid token")
        try:
            UUID(str(claims["sub"]))
        except ValueError as e:
            raise InvalidTokenError("Invalid token") from e
        return claims

    def issue_docs_token(self, now: datetime | None = None) -> str:
        claims = {"sub": DOCS_SUBJECT, "purpose": DOCS_PURPOSE}
        return self._encode(claims, self.docs_secret(), now)

    def verify_docs_token(self, token: str) -> dict[str, Any]:
        claims = self._decode(token, self.docs_secret())
        if claims.get("purpose") != DOCS_PURPOSE:
            raise InvalidTokenError("Invalid token")
        return claims
