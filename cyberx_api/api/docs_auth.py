"""
Documentation access: POST /swagger/token exchanges SWAGGER_SECRET for a documentation token;
GET /docs and GET /openapi.json require that token.
"""
import hmac
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse

from cyberx_api import audit
from cyberx_api.api.deps import get_token_service, verify_docs_access
from cyberx_api.config import settings
from cyberx_api.errors import AuthenticationError, ConfigurationError
from cyberx_api.schemas.auth import DocsTokenRequest, DocsTokenResponse
from cyberx_api.services.tokens import TokenService

router = APIRouter(tags=["documentation"])
logger = logging.getLogger(__name__)


@router.post("/swagger/token", response_model=DocsTokenResponse)
def issue_docs_token(
    request: Request,
    body: DocsTokenRequest | None = None,
    tokens: TokenService = Depends(get_token_service),
):
    """Body {swaggerSecret}. 401 missing or wrong secret, 500 when SWAGGER_SECRET is not configured."""
    provided = ((body.swagger_secret if body else None) or "").strip()
    if not provided:
        audit.security_event("docs_token_missing_secret", threat_level="medium", request=request)
        raise AuthenticationError("Swagger secret is required")

    expected = settings.swagger_secret
    if not expected:
        logger.error("SWAGGER_SECRET not configured")
        raise ConfigurationError("Swagger authentication not configured")

    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        audit.security_event(
            "docs_token_invalid_secret",
            threat_level="high",
            request=request,
            secret_hint=audit.secret_hint(provided),
        )
        raise AuthenticationError("Invalid swagger secret")

    token = tokens.issue_docs_token()
    audit.security_event("docs_token_issued", request=request)
    return DocsTokenResponse(token=token, expires_in=tokens.expires_in)


@router.get("/openapi.json", include_in_schema=False)
def openapi_schema(request: Request, _claims: dict = Depends(verify_docs_access)):
    return JSONResponse(request.app.openapi())


@router.get("/docs", include_in_schema=False)
def swagger_ui(request: Request, _claims: dict = Depends(verify_docs_access)):
    return get_swagger_ui_html(
        openapi_url=f"/openapi.json?token={quote(request.state.docs_token)}",
        title=f"{request.app.title} Documentation",
    )
