"""
Login state machine against a real (SQLite) session: ordering of checks, atomic failure counting
and lockout, reset on success.
"""
from datetime import timedelta

import pytest

from conftest import get_user
from cyberx_api.config import settings
from cyberx_api.errors import AccountLockedError, AuthenticationError, ConfigurationError
from cyberx_api.models.types import utcnow
from cyberx_api.repositories.users import UserRepository
from cyberx_api.services.authenticator import (
    INVALID_CREDENTIALS,
    LOCKOUT_DURATION,
    MAX_FAILED_ATTEMPTS,
    Authenticator,
)
from cyberx_api.services.tokens import TokenService


@pytest.fixture
def authenticator(db):
    return Authenticator(UserRepository(db), TokenService(settings))


def _fail(authenticator, email="user@x.com", password="wrong-password"):
    with pytest.raises(AuthenticationError) as exc:
        authenticator.login(email, password)
    return exc.value


def test_success_returns_token_and_roles(authenticator, db):
    result = authenticator.login("admin@x.com", "admin123")
    assert result.roles == ["admin"]
    assert result.expires_in == "24h"
    assert TokenService(settings).verify_api_token(result.token)["roles"] == ["admin"]
    assert get_user(db, "admin@x.com").last_login_at is not None


def test_unknown_email_same_message_as_bad_password(authenticator):
    assert _fail(authenticator, email="nobody@x.com").message == INVALID_CREDENTIALS
    assert _fail(authenticator).message == INVALID_CREDENTIALS


def test_lockout_after_max_failures(authenticator, db):
    before = utcnow()
    for attempt in range(1, MAX_FAILED_ATTEMPTS + 1):
        _fail(authenticator)
        assert get_user(db, "user@x.com").failed_login_attempts == attempt
    user = get_user(db, "user@x.com")
    assert user.locked_until is not None
    assert user.locked_until >= before + LOCKOUT_DURATION - timedelta(seconds=1)

    # Correct password while locked is still refused
    with pytest.raises(AccountLockedError) as exc:
        authenticator.login("user@x.com", "user123")
    assert exc.value.locked_until == user.locked_until
    assert exc.value.extra["lockedUntil"] == user.locked_until.isoformat()


def test_attempts_while_locked_do_not_count(authenticator, db):
    for _ in range(MAX_FAILED_ATTEMPTS):
        _fail(authenticator)
    locked = get_user(db, "user@x.com")
    locked_until = locked.locked_until

    with pytest.raises(AccountLockedError):
        authenticator.login("user@x.com", "wrong-password")
    user = get_user(db, "user@x.com")
    assert user.failed_login_attempts == MAX_FAILED_ATTEMPTS
    assert user.locked_until == locked_until


def test_failed_login_update_skips_locked_rows(db):
    repo = UserRepository(db)
    user = get_user(db, "user@x.com")
    until = utcnow() + timedelta(minutes=10)
    repo.update(user, {"failed_login_attempts": 2, "locked_until": until})

    now = utcnow()
    repo.register_failed_login(user.id, now=now, max_attempts=MAX_FAILED_ATTEMPTS, lockout=LOCKOUT_DURATION)
    user = get_user(db, "user@x.com")
    assert user.failed_login_attempts == 2
    assert user.locked_until == until


def test_expired_lock_starts_fresh_count(authenticator, db):
    repo = UserRepository(db)
    user = get_user(db, "user@x.com")
    repo.update(user, {"failed_login_attempts": MAX_FAILED_ATTEMPTS, "locked_until": utcnow() - timedelta(minutes=1)})

    _fail(authenticator)
    user = get_user(db, "user@x.com")
    assert user.failed_login_attempts == 1
    assert user.locked_until is None


def test_success_resets_counter(authenticator, db):
    for _ in range(MAX_FAILED_ATTEMPTS - 1):
        _fail(authenticator)
    authenticator.login("user@x.com", "user123")
    user = get_user(db, "user@x.com")
    assert user.failed_login_attempts == 0
    assert user.locked_until is None


def test_success_after_lock_expires(authenticator, db):
    repo = UserRepository(db)
    user = get_user(db, "user@x.com")
    repo.update(user, {"failed_login_attempts": MAX_FAILED_ATTEMPTS, "locked_until": utcnow() - timedelta(seconds=1)})
    authenticator.login("user@x.com", "user123")
    user = get_user(db, "user@x.com")
    assert user.failed_login_attempts == 0
    assert user.locked_until is None


def test_inactive_account(authenticator, db):
    repo = UserRepository(db)
    repo.update(get_user(db, "user@x.com"), {"is_active": False})
    err = _fail(authenticator, password="user123")
    assert err.message == "Account is inactive"
    # No bookkeeping for inactive accounts
    assert _fail(authenticator).message == "Account is inactive"
    assert get_user(db, "user@x.com").failed_login_attempts == 0


def test_soft_deleted_user_cannot_login(authenticator, db):
    repo = UserRepository(db)
    repo.soft_delete(get_user(db, "user@x.com"))
    assert _fail(authenticator, password="user123").message == INVALID_CREDENTIALS


def test_missing_secret_leaves_account_untouched(db, monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", None)
    authenticator = Authenticator(UserRepository(db), TokenService(settings))
    with pytest.raises(ConfigurationError):
        authenticator.login("admin@x.com", "admin123")
    assert get_user(db, "admin@x.com").last_login_at is None
