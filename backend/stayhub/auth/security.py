"""Password hashing and JWT issuing/verification.

Three token types share one signing key and are told apart by the ``type``
claim: ``access`` (short-lived, sent as Bearer), ``refresh`` (exchanged for
a new pair) and ``reset`` (single purpose, emailed for password resets).
"""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Literal

import bcrypt
from jose import JWTError, jwt

from stayhub.config import settings

TokenType = Literal["access", "refresh", "reset"]


# ---------------------------------------------------------------------------
# Passwords (bcrypt directly; passlib is unmaintained against bcrypt 4.x)
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def _default_lifetime(token_type: TokenType) -> timedelta:
    if token_type == "access":
        return timedelta(minutes=settings.jwt_access_token_expire_minutes)
    if token_type == "refresh":
        return timedelta(days=settings.jwt_refresh_token_expire_days)
    return timedelta(minutes=settings.jwt_reset_token_expire_minutes)


def create_token(data: dict, token_type: TokenType, expires_delta: timedelta | None = None) -> str:
    """Sign a token of the given type.

    Args:
        data: Payload data. Must include ``sub`` (user UUID as string).
        token_type: One of ``access``, ``refresh``, ``reset``.
        expires_delta: Custom lifetime; defaults come from settings.

    Returns:
        Encoded JWT string.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or _default_lifetime(token_type))
    to_encode.update({"exp": expire, "iat": now, "type": token_type})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    return create_token(data, "access", expires_delta)


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    return create_token(data, "refresh", expires_delta)


def password_fingerprint(password_hash: str | None) -> str:
    """Keyed digest of a password hash, safe to put in a readable claim."""
    return hmac.new(
        settings.jwt_secret_key.encode("utf-8"),
        (password_hash or "").encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def reset_token_matches(payload: dict, password_hash: str | None) -> bool:
    return hmac.compare_digest(str(payload.get("pwd", "")), password_fingerprint(password_hash))


def create_reset_token(user_id: str, password_hash: str | None) -> str:
    """Password-reset token bound to the current password hash.

    The ``pwd`` claim holds a fingerprint of the hash so the token stops
    working once the password has been changed with it.
    """
    return create_token({"sub": user_id, "pwd": password_fingerprint(password_hash)}, "reset")


def decode_token(token: str, expected_type: TokenType | None = None) -> dict:
    """Decode and verify a JWT token.

    Raises:
        jose.JWTError: If the token is invalid, expired, malformed, or of a
            different type than ``expected_type``.
    """
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    if expected_type is not None and payload.get("type") != expected_type:
        raise JWTError(f"Expected a {expected_type} token")
    return payload


def create_token_pair(user_id: str) -> dict[str, str]:
    """Create both access and refresh tokens for a user."""
    payload = {"sub": user_id}
    return {
        "access_token": create_access_token(payload),
        "refresh_token": create_refresh_token(payload),
        "token_type": "bearer",
    }
