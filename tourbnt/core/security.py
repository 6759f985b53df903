"""
Password hashing, token signing and secret encryption.

- Passwords: bcrypt
- Tokens: PyJWT (HS256 by default) carrying ``sub``, ``roles`` and ``exp``
- Stored third party keys: Fernet symmetric encryption
"""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from cryptography.fernet import Fernet, InvalidToken

from tourbnt.core.logging_config import get_logger
from tourbnt.server.core.config import settings

logger = get_logger(__name__)

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"

MASKED_SECRET = "••••••••"


class TokenError(Exception):
    """Raised when a token cannot be decoded or has expired."""


# =====================================================================
# Passwords
# =====================================================================


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# =====================================================================
# Tokens
# =====================================================================


def session_lifetime(keep_me_signed_in: bool = False) -> timedelta:
    """How long a login session lasts."""
    if keep_me_signed_in:
        return timedelta(days=settings.jwt_remember_me_days)
    return timedelta(hours=settings.jwt_expires_in_hours)


def _encode(payload: Dict[str, Any], secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    claims = dict(payload, iat=now, exp=now + lifetime)
    return jwt.encode(claims, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, roles: str, keep_me_signed_in: bool = False) -> str:
    return _encode({"sub": user_id, "roles": roles}, settings.jwt_secret, session_lifetime(keep_me_signed_in))


def create_refresh_token(user_id: str, keep_me_signed_in: bool = False) -> str:
    return _encode(
        {"sub": user_id, "type": "refresh"}, settings.jwt_refresh_secret, session_lifetime(keep_me_signed_in)
    )


def create_purpose_token(user_id: str, purpose: str, lifetime: Optional[timedelta] = None) -> str:
    """Short lived token used in email verification and password reset links."""
    lifetime = lifetime or timedelta(minutes=settings.jwt_purpose_token_minutes)
    return _encode({"sub": user_id, "purpose": purpose}, settings.jwt_secret, lifetime)


def decode_token(token: str, secret: Optional[str] = None, purpose: Optional[str] = None) -> Dict[str, Any]:
    """Decode and validate a token.

    Args:
        token: Encoded JWT
        secret: Signing secret, the access token secret by default
        purpose: When given, the token must carry this ``purpose`` claim

    Raises:
        TokenError: The token is malformed, expired, badly signed or for another purpose
    """
    try:
        claims = jwt.decode(token, secret or settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError("Invalid token") from e
    if not claims.get("sub"):
        raise TokenError("Token has no subject")
    if purpose is not None and claims.get("purpose") != purpose:
        raise TokenError("Token was issued for a different purpose")
    return claims


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode a session token; email verification and password reset tokens are refused."""
    claims = decode_token(token)
    if claims.get("purpose") or claims.get("type") == "refresh":
        raise TokenError("Token is not a session token")
    return claims


# =====================================================================
# Secret encryption
# =====================================================================


def _fernet() -> Fernet:
    key = settings.settings_encryption_key
    if key:
        return Fernet(key.encode("utf-8"))
    digest = hashlib.sha256(settings.jwt_secret.encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_secret(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return _fernet().encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_secret(value: Optional[str]) -> Optional[str]:
    """Decrypt a stored secret; undecryptable values yield ``None``."""
    if not value:
        return None
    try:
        return _fernet().decrypt(value.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        logger.warning("Stored secret could not be decrypted with the current key")
        return None


def mask_secret(value: Optional[str]) -> Optional[str]:
    return MASKED_SECRET if value else None
