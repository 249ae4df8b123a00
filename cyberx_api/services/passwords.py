"""
Password hasher over the bcrypt package (no passlib). Each hash gets its own salt at the
configured work factor. Only hash when a password is actually being set.
"""
import bcrypt

from cyberx_api.config import settings

# bcrypt reads at most 72 bytes of input; stay one under
BCRYPT_MAX_BYTES = 71


def _password_bytes(password: str) -> bytes:
    return (password or "").encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int | None = None) -> str:
    if password is None:
        raise ValueError("password is required")
    digest = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds))
    return digest.decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time check. False for empty input or a digest bcrypt cannot parse."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        return False
