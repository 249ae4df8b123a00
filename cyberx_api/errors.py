"""
Error taxonomy for the API. Services and dependencies raise these; main.py renders them as
{success: false, error, message, code?, ...extra} with the matching HTTP status.
"""
from datetime import datetime
from typing import Any


class ApiError(Exception):
    """Base class: carries HTTP status, error category, optional machine code and extra body fields."""

    status_code: int = 500
    error: str = "Internal Server Error"
    code: str | None = None

    def __init__(self, message: str, *, code: str | None = None, extra: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra or {}

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.error, "message": self.message}
        if self.code:
            body["code"] = self.code
        body.update(self.extra)
        return body


class ValidationError(ApiError):
    status_code = 400
    error = "Validation Error"
    code = "VALIDATION_ERROR"


class AuthenticationError(ApiError):
    """Bad credentials or missing token."""
    status_code = 401
    error = "Unauthorized"
    code = "UNAUTHORIZED"


class AuthorizationError(ApiError):
    """Authenticated, but not allowed (role or ownership)."""
    status_code = 403
    error = "Forbidden"
    code = "INSUFFICIENT_PERMISSIONS"


class InvalidTokenError(ApiError):
    status_code = 403
    error = "Forbidden"
    code = "FORBIDDEN"


class TokenExpiredError(ApiError):
    status_code = 403
    error = "Forbidden"
    code = "TOKEN_EXPIRED"


class InactiveAccountError(ApiError):
    status_code = 403
    error = "Forbidden"
    code = "INACTIVE_USER"


class NotFoundError(ApiError):
    status_code = 404
    error = "Not Found"
    code = "NOT_FOUND"


class ConflictError(ApiError):
    status_code = 409
    error = "Conflict"
    code = "CONFLICT"


class AccountLockedError(ApiError):
    status_code = 423
    error = "Account Locked"
    code = "ACCOUNT_LOCKED"

    def __init__(self, message: str, locked_until: datetime):
        super().__init__(message, extra={"lockedUntil": locked_until.isoformat()})
        self.locked_until = locked_until


class ConfigurationError(ApiError):
    """Missing server-side secret or setting. Fatal for the request, not the process."""
    status_code = 500
    error = "Internal Server Error"
    code = "CONFIG_ERROR"
