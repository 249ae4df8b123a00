"""
API tests for login, the authorization dependency and greeting routes.
Uses FastAPI TestClient against the seeded SQLite database from conftest.
"""
from datetime import timedelta

from jose import jwt

from conftest import bearer, get_role, get_user, login
from cyberx_api.config import settings
from cyberx_api.models.types import utcnow
from cyberx_api.repositories.assignments import AssignmentRepository
from cyberx_api.repositories.users import UserRepository
from cyberx_api.services.tokens import TokenService


def test_admin_login(client):
    resp = login(client, "admin@x.com", "admin123")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Login successful"
    assert body["expiresIn"] == "24h"
    assert body["user"]["email"] == "admin@x.com"
    assert body["user"]["roles"] == ["admin"]
    assert body["user"]["lastLoginAt"] is not None
    assert "password_hash" not in body["user"]
    claims = jwt.get_unverified_claims(body["token"])
    assert claims["roles"] == ["admin"]
    assert claims["sub"] == body["user"]["id"]


def test_login_email_is_case_insensitive(client):
    assert login(client, "  ADMIN@X.com ", "admin123").status_code == 200


def test_wrong_password_and_unknown_email_look_the_same(client):
    wrong = login(client, "admin@x.com", "not-the-password")
    unknown = login(client, "ghost@x.com", "not-the-password")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"] == "Invalid email or password"


def test_lockout_via_api(client):
    for _ in range(5):
        resp = login(client, "user@x.com", "wrong-password")
        assert resp.status_code == 401
    resp = login(client, "user@x.com", "user123")
    assert resp.status_code == 423
    body = resp.json()
    assert body["code"] == "ACCOUNT_LOCKED"
    assert body["error"] == "Account Locked"
    assert body["lockedUntil"] > utcnow().isoformat()


def test_password_length_validation(client):
    # 64 chars is a valid shape; credentials are just wrong
    assert login(client, "user@x.com", "p" * 64).status_code == 401
    too_long = login(client, "user@x.com", "p" * 129)
    assert too_long.status_code == 400
    body = too_long.json()
    assert body["error"] == "Validation Error"
    assert body["code"] == "VALIDATION_ERROR"
    assert any(d["field"] == "password" for d in body["details"])
    assert login(client, "user@x.com", "p" * 5).status_code == 400


def test_invalid_email_is_validation_error(client):
    assert login(client, "not-an-email", "whatever1").status_code == 400


def test_validation_failure_does_not_count_as_attempt(client, db):
    login(client, "user@x.com", "p" * 129)
    assert get_user(db, "user@x.com").failed_login_attempts == 0


def test_login_without_jwt_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", None)
    resp = login(client, "admin@x.com", "admin123")
    assert resp.status_code == 500
    assert resp.json()["code"] == "CONFIG_ERROR"


def test_me_requires_token(client):
    resp = client.get("/auth/me")
    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "UNAUTHORIZED"


def test_me_with_token(client, user_headers):
    resp = client.get("/auth/me", headers=user_headers)
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["email"] == "user@x.com"
    assert user["roles"] == ["user"]
    assert user["is_active"] is True


def test_malformed_token(client):
    resp = client.get("/auth/me", headers=bearer("not.a.jwt"))
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


def test_expired_token(client, db):
    user = get_user(db, "user@x.com")
    token = TokenService(settings).issue_api_token(
        user_id=user.id, email=user.email, name=user.name, roles=["user"], now=utcnow() - timedelta(hours=25)
    )
    resp = client.get("/auth/me", headers=bearer(token))
    assert resp.status_code == 403
    assert resp.json()["code"] == "TOKEN_EXPIRED"


def test_protected_route_without_secret(client, user_headers, monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", None)
    resp = client.get("/auth/me", headers=user_headers)
    assert resp.status_code == 500
    assert resp.json()["code"] == "CONFIG_ERROR"


def test_deactivated_after_issue(client, db, user_headers):
    UserRepository(db).update(get_user(db, "user@x.com"), {"is_active": False})
    resp = client.get("/auth/me", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "INACTIVE_USER"


def test_deleted_after_issue(client, db, user_headers):
    UserRepository(db).soft_delete(get_user(db, "user@x.com"))
    resp = client.get("/auth/me", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "INACTIVE_USER"


def test_locked_after_issue(client, db, user_headers):
    UserRepository(db).update(get_user(db, "user@x.com"), {"locked_until": utcnow() + timedelta(minutes=5)})
    resp = client.get("/auth/me", headers=user_headers)
    assert resp.status_code == 423
    assert resp.json()["code"] == "ACCOUNT_LOCKED"
    assert "lockedUntil" in resp.json()


def test_roles_come_from_current_assignments(client, db, admin_headers):
    assert client.get("/users", headers=admin_headers).status_code == 200
    admin = get_user(db, "admin@x.com")
    AssignmentRepository(db).deactivate(admin.id, get_role(db, "admin").id)
    # Token still says admin, but the assignment is gone
    resp = client.get("/users", headers=admin_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "INSUFFICIENT_PERMISSIONS"


def test_docs_token_is_not_an_api_token(client):
    docs = client.post("/swagger/token", json={"swaggerSecret": "open-sesame-docs"}).json()["token"]
    resp = client.get("/auth/me", headers=bearer(docs))
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


def test_public_routes(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "OK"
    hello = client.get("/hello")
    assert hello.status_code == 200
    assert hello.json()["message"] == "Hello World!"
    assert hello.json()["service"] == health.json()["service"] == "cyberx-backend"


def test_protected_hello(client, viewer_headers):
    assert client.get("/protected/hello").status_code == 401
    resp = client.get("/protected/hello", headers=viewer_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Hello authenticated user!"
    assert body["user"]["email"] == "viewer@x.com"
    assert body["user"]["roles"] == ["viewer"]
