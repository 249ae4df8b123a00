"""
Shared fixtures. Environment is set before cyberx_api is imported so Settings and the engine
pick up a throwaway SQLite database, test secrets and a cheap bcrypt work factor.
Each test starts from a fresh schema seeded with three users:
  admin@x.com / admin123 (admin), user@x.com / user123 (user), viewer@x.com / viewer123 (viewer)
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="cyberx-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ["JWT_SECRET"] = "test-api-secret-please-change-0123456789"
os.environ["JWT_SWAGGER_SECRET"] = "test-docs-secret-please-change-0123456789"
os.environ["SWAGGER_SECRET"] = "open-sesame-docs"
os.environ["JWT_SWAGGER_ALLOW_API_SECRET"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

import cyberx_api.models  # noqa: F401
from cyberx_api.database import Base, SessionLocal, engine, seed_system_roles
from cyberx_api.main import app
from cyberx_api.models.role import Role
from cyberx_api.models.user import User
from cyberx_api.models.user_role import UserRole
from cyberx_api.services.passwords import hash_password

SEED_USERS = (
    ("admin@x.com", "admin123", "Admin User", "admin"),
    ("user@x.com", "user123", "Regular User", "user"),
    ("viewer@x.com", "viewer123", "Viewer User", "viewer"),
)


@pytest.fixture(autouse=True)
def seeded_db():
    """Recreate all tables and seed roles admin, super_admin, user, viewer plus one user per role."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_system_roles(db)
        db.add_all([
            Role(name="user", description="Regular user", is_active=True),
            Role(name="viewer", description="Read-only user", is_active=True),
        ])
        db.commit()
        roles = {r.name: r for r in db.query(Role).all()}
        for email, password, name, role_name in SEED_USERS:
            user = User(email=email, password_hash=hash_password(password), name=name, is_active=True)
            db.add(user)
            db.flush()
            db.add(UserRole(user_id=user.id, role_id=roles[role_name].id, is_active=True))
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture
def db():
    """Session for arranging and inspecting state directly."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client, email: str, password: str):
    return client.post("/auth/login", json={"email": email, "password": password})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def get_user(db, email: str) -> User:
    db.expire_all()
    return db.query(User).filter(User.email == email).one()


def get_role(db, name: str) -> Role:
    db.expire_all()
    return db.query(Role).filter(Role.name == name).one()


@pytest.fixture
def admin_headers(client):
    resp = login(client, "admin@x.com", "admin123")
    assert resp.status_code == 200, resp.text
    return bearer(resp.json()["token"])


@pytest.fixture
def user_headers(client):
    resp = login(client, "user@x.com", "user123")
    assert resp.status_code == 200, resp.text
    return bearer(resp.json()["token"])


@pytest.fixture
def viewer_headers(client):
    resp = login(client, "viewer@x.com", "viewer123")
    assert resp.status_code == 200, resp.text
    return bearer(resp.json()["token"])
