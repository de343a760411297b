# =============================================================================================
# SESSION_API/CORE/SECURITY.PY - PASSWORD HASHING AND TOKEN ISSUER
# =============================================================================================
# Cryptographic helpers for authentication:
# 1. Password hashing with bcrypt (one-way, salted)
# 2. Access token creation (1 hour, signed with ACCESS_TOKEN_SECRET)
# 3. Refresh token creation (long-lived, signed with REFRESH_TOKEN_SECRET)
# 4. Token verification (signature + expiry + optional type check)
# 5. Refresh token hashing (HMAC-SHA256 keyed by REFRESH_TOKEN_SECRET)
#
# SECURITY PRINCIPLES:
# - Never store plaintext passwords (bcrypt hash only)
# - Never store or compare raw refresh tokens (keyed hash only)
# - Access and refresh tokens use different secrets: one can never pass as the other
# =============================================================================================

import hashlib
import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from session_api.core.config import get_settings

settings = get_settings()

# -------------------------
# PASSWORD HASHING SETUP (BCRYPT)
# -------------------------
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(Exception):
    """Raised when a token fails signature, expiry, type or claim checks."""


# =============================================================================================
# PASSWORD HASHING FUNCTIONS
# =============================================================================================

def hash_password(password: str) -> str:
    """
    Hash a plaintext password using bcrypt.

    Same password → different hash each time (random salt is embedded in the
    result), so hashes can only be checked with verify_password().
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


# =============================================================================================
# TOKEN ISSUER
# =============================================================================================

def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user_id: str) -> str:
    """
    Create a short-lived access token for the given user.

    PAYLOAD:
        {
            "sub": "<user id>",     # the only identity claim
            "type": "access",
            "iat": <issued at>,
            "exp": <now + ACCESS_TOKEN_EXPIRE_SECONDS>
        }

    Stateless: nothing is persisted, validity is signature + expiry only.
    """
    now = _now()
    payload = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS),
    }
    return jwt.encode(payload, settings.ACCESS_TOKEN_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str, expires_seconds: int | None = None) -> str:
    """
    Create a refresh token for the given user.

    The "jti" claim is random, so two tokens minted for the same user in the
    same second still differ (and so do their ledger hashes).

    Args:
        user_id: identifier embedded in the "sub" claim
        expires_seconds: lifetime override; defaults to REFRESH_TOKEN_EXPIRE_SECONDS.
                         A negative value produces an already-expired token.

    Returns:
        Signed JWT string. Only hash_token(<this>) may be persisted.
    """
    if expires_seconds is None:
        expires_seconds = settings.REFRESH_TOKEN_EXPIRE_SECONDS
    now = _now()
    payload = {
        "sub": str(user_id),
        "type": REFRESH_TOKEN_TYPE,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(seconds=expires_seconds),
    }
    return jwt.encode(payload, settings.REFRESH_TOKEN_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str, secret: str, expected_type: str | None = None) -> dict[str, Any]:
    """
    Decode and verify a JWT.

    CHECKS:
    1. Signature matches `secret` (only our configured algorithm is accepted)
    2. Token hasn't expired
    3. "sub" claim is present
    4. "type" claim matches `expected_type` when one is given

    Raises:
        InvalidTokenError: any of the checks failed. The original PyJWT error
        is chained as __cause__ for logging; callers never show it to clients.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError("Token is invalid") from exc

    if expected_type is not None and payload.get("type") != expected_type:
        raise InvalidTokenError(f"Expected {expected_type} token")
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    return verify_token(token, settings.ACCESS_TOKEN_SECRET, expected_type=ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict[str, Any]:
    return verify_token(token, settings.REFRESH_TOKEN_SECRET, expected_type=REFRESH_TOKEN_TYPE)


# =============================================================================================
# REFRESH TOKEN HASHING (LEDGER KEY)
# =============================================================================================

def hash_token(raw_token: str) -> str:
    """
    Keyed hash of a raw refresh token, as stored in the user's token collection.

    HMAC-SHA256 with REFRESH_TOKEN_SECRET as key: deterministic for lookups,
    and a leaked token table cannot be matched against guessed tokens without
    the server secret.

    Returns:
        64-character hex digest
    """
    return hmac.new(
        settings.REFRESH_TOKEN_SECRET.encode("utf-8"),
        raw_token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
