"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT, one secret per token class
- SHA-256 storage hash for refresh tokens
"""
from __future__ import annotations

import enum
import functools
import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from flask import current_app

from api.config import ConfigurationError

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"

_SECRET_SETTINGS = {ACCESS: "JWT_ACCESS_SECRET", REFRESH: "JWT_REFRESH_SECRET"}
_EXPIRY_SETTINGS = {ACCESS: "ACCESS_TOKEN_EXPIRES", REFRESH: "REFRESH_TOKEN_EXPIRES"}


def _hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=current_app.config.get("PASSWORD_HASH_TIME_COST", 3))


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2 (salted, slow)."""
    return _hasher().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    try:
        return _hasher().verify(password_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError):
        logger.warning("Stored password hash could not be verified")
        return False


@functools.lru_cache(maxsize=4)
def _dummy_hash(time_cost: int) -> str:
    return PasswordHasher(time_cost=time_cost).hash(uuid.uuid4().hex)


def dummy_password_hash() -> str:
    """Hash to verify against when no user matched, so lookups cost the same."""
    return _dummy_hash(current_app.config.get("PASSWORD_HASH_TIME_COST", 3))


def hash_for_storage(token: str) -> str:
    """Fast deterministic digest used to look up refresh tokens by equality."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID)."""
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _secret(kind: str) -> str:
    setting = _SECRET_SETTINGS[kind]
    secret = current_app.config.get(setting)
    if not secret:
        raise ConfigurationError(f"{setting} is not configured")
    return secret


def _issue(kind: str, user_id: str) -> str:
    secret = _secret(kind)
    now = _now()
    exp = now + current_app.config[_EXPIRY_SETTINGS[kind]]
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "blog-api"),
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "type": kind,
        "jti": generate_jti(),
    }
    return jwt.encode(payload, secret, algorithm=current_app.config["JWT_ALGORITHM"])


def issue_access_token(user_id: str) -> str:
    """Short-lived token for the Authorization header."""
    return _issue(ACCESS, user_id)


def issue_refresh_token(user_id: str) -> str:
    """Long-lived token, only ever sent back in the refresh cookie."""
    return _issue(REFRESH, user_id)


class TokenError(enum.Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class VerificationResult:
    claims: Optional[Dict[str, Any]] = None
    error: Optional[TokenError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def user_id(self) -> Optional[str]:
        return self.claims.get("sub") if self.claims else None


def verify_token(token: str, kind: str = ACCESS) -> VerificationResult:
    """
    Check signature, expiry and token class. Never raises for a bad token;
    the caller branches on result.ok. A missing secret still raises
    ConfigurationError since that is a deployment fault.
    """
    secret = _secret(kind)
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        return VerificationResult(error=TokenError.EXPIRED)
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected %s token: %s", kind, exc)
        return VerificationResult(error=TokenError.MALFORMED)

    if claims.get("type") != kind:
        return VerificationResult(error=TokenError.MALFORMED)
    return VerificationResult(claims=claims)
