"""Password hashing and access token helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from quotegen.core.config import get_settings


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def hash_password(password: str) -> str:
    settings = get_settings()
    # bcrypt only looks at the first 72 bytes.
    password_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.bcrypt_rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except ValueError:
        return False


def token_expiry(remember_me: bool = False) -> datetime:
    settings = get_settings()
    days = settings.jwt_remember_me_expire_days if remember_me else settings.jwt_expire_days
    return utcnow() + timedelta(days=days)


def create_access_token(claims: dict[str, Any], *, remember_me: bool = False) -> str:
    """Sign ``claims`` into a JWT with the configured expiry."""

    settings = get_settings()
    to_encode = dict(claims)
    to_encode["exp"] = token_expiry(remember_me).replace(tzinfo=timezone.utc)
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return token claims, or ``None`` when the token is invalid or expired."""

    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
