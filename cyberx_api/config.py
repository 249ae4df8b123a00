"""
Settings for the API, read from the environment and an optional .env at the project root.
Secrets default to None so a missing one surfaces as CONFIG_ERROR on the routes that need it.
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# .env next to the package (project root); load explicitly so secrets are set even when run elsewhere
_PROJECT_DIR = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_DIR / ".env"

# Reported by /health and the greeting routes
SERVICE_NAME = "cyberx-backend"

if _ENV_FILE.exists():
    from dotenv import load_dotenv
    load_dotenv(_ENV_FILE, override=False)


class Settings(BaseSettings):
    """Load and validate config from env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database: sqlite for local runs and tests, postgresql for production
    database_url: str = "sqlite:///./cyberx_dev.db"

    # Environment: set ENV=production in production; startup refuses to hide missing secrets there.
    env: str = ""
    debug: bool = False
    log_level: str = "INFO"

    # API tokens. No default: a missing secret is a configuration error on the routes that need it.
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # Documentation tokens (Swagger UI / OpenAPI schema access).
    # SWAGGER_SECRET is the shared secret exchanged for a token at POST /swagger/token.
    swagger_secret: str | None = None
    jwt_swagger_secret: str | None = None
    # Opt-in: sign documentation tokens with JWT_SECRET when JWT_SWAGGER_SECRET is unset. Logged on every use.
    jwt_swagger_allow_api_secret: bool = False

    # bcrypt work factor. 12 in production; tests lower it to keep the suite fast.
    bcrypt_rounds: int = 12

    # CORS: comma-separated origins
    cors_origins: str = "http://localhost:3000"

    @field_validator("jwt_secret", "jwt_swagger_secret", "swagger_secret", mode="before")
    @classmethod
    def _blank_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def _rounds_in_range(cls, v: int) -> int:
        if v < 4 or v > 15:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 15")
        return v

    @property
    def is_production(self) -> bool:
        return (self.env or "").strip().lower() == "production"

    @property
    def jwt_expires_in(self) -> str:
        """Human-readable token lifetime for responses, e.g. '24h'."""
        return f"{self.jwt_expire_hours}h"


settings = Settings()
