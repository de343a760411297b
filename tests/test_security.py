# =============================================================================================
# TESTS/TEST_SECURITY.PY - TOKEN ISSUER AND PASSWORD HASHER
# =============================================================================================

import jwt
import pytest

from session_api.core.config import get_settings
from session_api.core.security import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    hash_token,
    verify_password,
    verify_token,
)

settings = get_settings()


def test_hash_token_is_deterministic():
    token = create_refresh_token("user-1")
    assert hash_token(token) == hash_token(token)
    assert len(hash_token(token)) == 64


def test_hash_token_distinct_for_distinct_tokens():
    first = create_refresh_token("user-1")
    second = create_refresh_token("user-1")

    # Same user, same second: the jti claim still makes them differ
    assert first != second
    assert hash_token(first) != hash_token(second)


def test_hash_token_is_keyed():
    """The stored hash is an HMAC, not a bare SHA-256 of the token."""
    import hashlib

    token = create_refresh_token("user-1")
    assert hash_token(token) != hashlib.sha256(token.encode()).hexdigest()


def test_access_token_carries_user_id_and_one_hour_expiry():
    token = create_access_token("user-42")
    payload = decode_access_token(token)

    assert payload["sub"] == "user-42"
    assert payload["type"] == "access"
    assert payload["exp"] - payload["iat"] == settings.ACCESS_TOKEN_EXPIRE_SECONDS == 3600


def test_refresh_token_uses_configurable_expiry():
    payload = decode_refresh_token(create_refresh_token("user-42", expires_seconds=120))
    assert payload["exp"] - payload["iat"] == 120


def test_expired_token_is_rejected():
    token = create_refresh_token("user-1", expires_seconds=-10)
    with pytest.raises(InvalidTokenError):
        decode_refresh_token(token)


def test_tokens_do_not_cross_secrets():
    """An access token can't be redeemed as a refresh token and vice versa."""
    with pytest.raises(InvalidTokenError):
        decode_refresh_token(create_access_token("user-1"))
    with pytest.raises(InvalidTokenError):
        decode_access_token(create_refresh_token("user-1"))


def test_wrong_type_with_right_secret_is_rejected():
    forged = jwt.encode(
        {"sub": "user-1", "type": "access", "exp": 4102444800},
        settings.REFRESH_TOKEN_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(InvalidTokenError):
        decode_refresh_token(forged)


def test_tampered_and_garbage_tokens_are_rejected():
    header, payload, signature = create_access_token("user-1").split(".")
    tampered = f"{header}.{payload}.{'A' * len(signature)}"
    with pytest.raises(InvalidTokenError):
        verify_token(tampered, settings.ACCESS_TOKEN_SECRET)
    with pytest.raises(InvalidTokenError):
        verify_token("not-a-jwt", settings.ACCESS_TOKEN_SECRET)


def test_password_hash_roundtrip():
    hashed = hash_password("P@ssw0rd!")

    assert hashed != "P@ssw0rd!"
    assert verify_password("P@ssw0rd!", hashed)
    assert not verify_password("wrong-password", hashed)
