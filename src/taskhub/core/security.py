"""Security helpers for password hashing and JWT token management."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(slots=True)
class GeneratedToken:
    """Represents a generated JWT token with associated metadata."""

    token: str
    expires_at: datetime
    jti: str


def get_password_hash(password: str) -> str:
    """Return a hashed representation of ``password``."""

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hashed counterpart."""

    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    *,
    subject: str | int,
    role: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> GeneratedToken:
    """Create a signed, expiring JWT for the provided subject."""

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = now + expires_delta
    payload: dict[str, Any] = {
        "sub": str(subject),
        "iat": now,
        "exp": expire,
        "role": role,
        "jti": uuid4().hex,
    }
    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return GeneratedToken(token=token, expires_at=expire, jti=payload["jti"])


def decode_token(*, token: str, secret: str, algorithm: str) -> dict[str, Any]:
    """Decode a JWT token and return its payload."""

    return jwt.decode(token, secret, algorithms=[algorithm])


class RevokedTokens:
    """Token ids invalidated by logout, each kept until its token would expire.

    The set lives in process memory; a multi-process deployment needs a
    shared store instead.
    """

    def __init__(self) -> None:
        self._expiry_by_jti: dict[str, datetime] = {}
        self._lock = Lock()

    def _drop_expired(self) -> None:
        current = datetime.now(timezone.utc)
        self._expiry_by_jti = {
            jti: expires_at for jti, expires_at in self._expiry_by_jti.items() if expires_at > current
        }

    def revoke(self, jti: str, expires_at: datetime) -> None:
        with self._lock:
            self._drop_expired()
            self._expiry_by_jti[jti] = expires_at

    def __contains__(self, jti: object) -> bool:
        with self._lock:
            self._drop_expired()
            return jti in self._expiry_by_jti

    def __len__(self) -> int:
        with self._lock:
            return len(self._expiry_by_jti)

    def clear(self) -> None:
        with self._lock:
            self._expiry_by_jti.clear()


revoked_tokens = RevokedTokens()


def revoke_token(jti: str, expires_at: datetime) -> None:
    """Reject the token ``jti`` from now until ``expires_at``."""

    revoked_tokens.revoke(jti, expires_at)


def is_token_revoked(jti: str) -> bool:
    return jti in revoked_tokens


__all__ = [
    "GeneratedToken",
    "JWTError",
    "RevokedTokens",
    "create_access_token",
    "decode_token",
    "get_password_hash",
    "is_token_revoked",
    "revoke_token",
    "revoked_tokens",
    "verify_password",
]
