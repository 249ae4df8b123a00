"""
Security audit log. Every auth/authz decision worth reconstructing later goes through security_event,
tagged with a threat level (none | low | medium | high). The level is for triage only; it never changes
what the request returns.
"""
import logging
from typing import Any

from fastapi import Request

logger = logging.getLogger("cyberx_api.security")

THREAT_LEVELS = ("none", "low", "medium", "high")

_LEVEL_TO_LOGGING = {
    "none": logging.INFO,
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.WARNING,
}


def request_context(request: Request | None) -> dict[str, Any]:
    """ip, endpoint and method for a request (empty if no request, e.g. in unit tests)."""
    if request is None:
        return {}
    return {
        "ip": request.client.host if request.client else None,
        "endpoint": request.url.path,
        "method": request.method,
    }


def secret_hint(secret: str | None) -> str:
    """First 4 characters followed by '...'. For logs only, never responses."""
    if not secret:
        return ""
    return secret[:4] + "..."


def security_event(
    event: str,
    *,
    threat_level: str = "none",
    request: Request | None = None,
    **context: Any,
) -> None:
    if threat_level not in THREAT_LEVELS:
        raise ValueError(f"unknown threat level: {threat_level}")
    fields = {**request_context(request), **{k: v for k, v in context.items() if v is not None}}
    fields["threat_level"] = threat_level
    rendered = " ".join(f"{k}={v}" for k, v in fields.items())
    logger.log(
        _LEVEL_TO_LOGGING[threat_level],
        "%s %s",
        event,
        rendered,
        extra={"security_event": event, **{f"audit_{k}": v for k, v in fields.items()}},
    )
