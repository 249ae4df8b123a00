"""Unit tests for the token service: API vs documentation domains, expiry, configuration errors."""
import logging
import uuid
from datetime import timedelta

import pytest
from jose import jwt

from cyberx_api.config import Settings
from cyberx_api.errors import ConfigurationError, InvalidTokenError, TokenExpiredError
from cyberx_api.models.types import utcnow
from cyberx_api.services.tokens import DOCS_PURPOSE, DOCS_SUBJECT, TokenService

API_SECRET = "unit-api-secret-0123456789abcdef"
DOCS_SECRET = "unit-docs-secret-0123456789abcdef"


def _service(**overrides) -> TokenService:
    values = {"jwt_secret": API_SECRET, "jwt_swagger_secret": DOCS_SECRET, "jwt_swagger_allow_api_secret": False}
    values.update(overrides)
    return TokenService(Settings(**values))


def _api_token(service: TokenService, **kwargs) -> tuple[str, uuid.UUID]:
    user_id = uuid.uuid4()
    token = service.issue_api_token(
        user_id=user_id, email="a@x.com", name="A", roles=["viewer", "admin"], **kwargs
    )
    return token, user_id


def test_api_token_claims():
    service = _service()
    token, user_id = _api_token(service)
    claims = service.verify_api_token(token)
    assert claims["sub"] == str(user_id)
    assert claims["email"] == "a@x.com"
    assert claims["name"] == "A"
    assert claims["roles"] == ["admin", "viewer"]
    assert claims["exp"] - claims["iat"] == 24 * 3600


def test_expires_in_label():
    assert _service().expires_in == "24h"
    assert _service(jwt_expire_hours=2).expires_in == "2h"


def test_expired_api_token():
    service = _service()
    token, _ = _api_token(service, now=utcnow() - timedelta(hours=25))
    with pytest.raises(TokenExpiredError) as exc:
        service.verify_api_token(token)
    assert exc.value.code == "TOKEN_EXPIRED"
    assert exc.value.status_code == 403


def test_tampered_api_token():
    service = _service()
    token, _ = _api_token(service)
    with pytest.raises(InvalidTokenError) as exc:
        service.verify_api_token(token[:-3] + ("aaa" if not token.endswith("aaa") else "bbb"))
    assert exc.value.code == "FORBIDDEN"


def test_token_signed_with_other_key_rejected():
    token, _ = _api_token(_service(jwt_secret="some-other-secret-0123456789abcd"))
    with pytest.raises(InvalidTokenError):
        _service().verify_api_token(token)


def test_api_token_requires_uuid_subject():
    token = jwt.encode({"sub": "not-a-uuid", "exp": int((utcnow() + timedelta(hours=1)).timestamp())}, API_SECRET)
    with pytest.raises(InvalidTokenError):
        _service().verify_api_token(token)


def test_docs_token_claims():
    service = _service()
    claims = service.verify_docs_token(service.issue_docs_token())
    assert claims["sub"] == DOCS_SUBJECT
    assert claims["purpose"] == DOCS_PURPOSE


def test_domains_do_not_cross():
    service = _service()
    api_token, _ = _api_token(service)
    with pytest.raises(InvalidTokenError):
        service.verify_docs_token(api_token)
    with pytest.raises(InvalidTokenError):
        service.verify_api_token(service.issue_docs_token())


def test_shared_key_still_separates_domains(caplog):
    service = _service(jwt_swagger_secret=None, jwt_swagger_allow_api_secret=True)
    with caplog.at_level(logging.WARNING, logger="cyberx_api.services.tokens"):
        docs_token = service.issue_docs_token()
    assert any("JWT_SWAGGER_SECRET not set" in r.getMessage() for r in caplog.records)
    # Same key, but the purpose claim keeps the token out of the API domain
    with pytest.raises(InvalidTokenError):
        service.verify_api_token(docs_token)
    api_token, _ = _api_token(service)
    with pytest.raises(InvalidTokenError):
        service.verify_docs_token(api_token)


def test_missing_api_secret_is_configuration_error():
    service = _service(jwt_secret=None)
    with pytest.raises(ConfigurationError) as exc:
        _api_token(service)
    assert exc.value.code == "CONFIG_ERROR"
    assert exc.value.status_code == 500


def test_missing_docs_secret_without_opt_in():
    service = _service(jwt_swagger_secret=None)
    with pytest.raises(ConfigurationError):
        service.issue_docs_token()


def test_blank_secret_counts_as_unset():
    assert Settings(jwt_secret="   ").jwt_secret is None
