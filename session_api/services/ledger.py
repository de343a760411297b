# =============================================================================================
# SESSION_API/SERVICES/LEDGER.PY - REFRESH TOKEN LEDGER (CONSUME-AND-ROTATE)
# =============================================================================================
# Per user, the set of currently-valid refresh-token hashes lives in refresh_tokens.
# Logout and refresh both start by CONSUMING the presented token:
#
#   1. (caller) read the raw token from the refresh cookie   → 401 if absent
#   2. verify signature + expiry with REFRESH_TOKEN_SECRET    → 401 if invalid
#   3. load the user named by the "sub" claim                 → 401 if unknown
#   4. DELETE the entry WHERE user_id = ? AND token_hash = ?  (single statement)
#   5. report whether a row was actually removed
#
# Logout then commits and clears the cookie no matter what step 4 found.
# Refresh additionally requires step 4 to have removed a row (the token was still
# valid), then appends a freshly minted token's hash and commits remove + append
# as ONE transaction.
#
# CONCURRENCY:
# Two requests redeeming the same token race on the same conditional DELETE; the
# database lets only one of them see rowcount == 1, so at most one refresh succeeds.
# =============================================================================================

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.orm import Session

from session_api.core.config import get_settings
from session_api.core.errors import UnauthorizedError
from session_api.core.security import (
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_token,
)
from session_api.models.token import RefreshToken
from session_api.models.user import User

logger = logging.getLogger(__name__)

settings = get_settings()

INVALID_REFRESH_TOKEN = "Invalid refresh token"


@dataclass
class ConsumeResult:
    """Outcome of consuming a refresh token."""

    user: User
    # False when the token verified but had no entry in the ledger
    # (already consumed, or never issued by this server)
    was_valid: bool


@dataclass
class RotateResult:
    user: User
    access_token: str
    refresh_token: str


def consume_refresh_token(db: Session, raw_token: str | None) -> ConsumeResult:
    """
    Remove the presented refresh token from its owner's token collection.

    Nothing is committed: the caller owns the transaction.

    Raises:
        UnauthorizedError: token missing, signature/expiry invalid, or the
                           user named in the token does not exist
    """
    # -------------------------
    # STEP 1: Token must be present
    # -------------------------
    if not raw_token:
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    # -------------------------
    # STEP 2: Verify signature and expiry
    # -------------------------
    try:
        payload = decode_refresh_token(raw_token)
    except InvalidTokenError as exc:
        logger.warning("Refresh token rejected: %s", exc)
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    # -------------------------
    # STEP 3: Load the owner
    # -------------------------
    # Unknown user answers exactly like a bad token
    user = db.get(User, payload["sub"])
    if user is None:
        logger.warning("Refresh token names unknown user %s", payload["sub"])
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    # -------------------------
    # STEP 4: Conditional removal (pull-by-hash)
    # -------------------------
    result = db.execute(
        delete(RefreshToken)
        .where(RefreshToken.user_id == user.id, RefreshToken.token_hash == hash_token(raw_token))
        .execution_options(synchronize_session=False)
    )
    was_valid = result.rowcount == 1

    # The relationship may already be loaded with the deleted row
    db.expire(user, ["tokens"])

    return ConsumeResult(user=user, was_valid=was_valid)


def issue_refresh_token(db: Session, user: User, expires_seconds: int | None = None) -> str:
    """
    Mint a refresh token for `user` and append its hash to the ledger (push).

    Expired entries of the same user are pruned in the same transaction.
    Nothing is committed: the caller owns the transaction.

    Returns:
        The raw refresh token, to be sent to the client exactly once.
    """
    if expires_seconds is None:
        expires_seconds = settings.REFRESH_TOKEN_EXPIRE_SECONDS

    raw_token = create_refresh_token(user.id, expires_seconds=expires_seconds)
    now = datetime.now(timezone.utc)

    db.execute(
        delete(RefreshToken)
        .where(RefreshToken.user_id == user.id, RefreshToken.expires_at < now)
        .execution_options(synchronize_session=False)
    )
    db.add(
        RefreshToken(
            user_id=user.id,
            token_hash=hash_token(raw_token),
            expires_at=now + timedelta(seconds=expires_seconds),
        )
    )
    db.expire(user, ["tokens"])
    return raw_token


def rotate_refresh_token(db: Session, raw_token: str | None) -> RotateResult:
    """
    Redeem a refresh token once and replace it with a new one.

    The removal of the old hash and the append of the new hash are committed
    together. A token that verifies but is no longer in the ledger is rejected
    and the transaction is rolled back, leaving the collection unchanged.

    Raises:
        UnauthorizedError: see consume_refresh_token(), plus "already consumed"
    """
    consumed = consume_refresh_token(db, raw_token)

    if not consumed.was_valid:
        user_id = consumed.user.id
        db.rollback()
        logger.warning("Replay of a consumed refresh token for user %s", user_id)
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    user = consumed.user
    new_refresh_token = issue_refresh_token(db, user)
    db.commit()
    db.refresh(user)

    logger.info("Rotated refresh token for user %s", user.id)
    return RotateResult(
        user=user,
        access_token=create_access_token(user.id),
        refresh_token=new_refresh_token,
    )


def revoke_refresh_token(db: Session, raw_token: str | None) -> User:
    """
    Logout: consume the token and commit, whether or not an entry matched.

    Raises:
        UnauthorizedError: see consume_refresh_token()
    """
    consumed = consume_refresh_token(db, raw_token)
    db.commit()
    if consumed.was_valid:
        logger.info("Refresh token revoked for user %s", consumed.user.id)
    else:
        logger.info("Logout with an already-consumed refresh token for user %s", consumed.user.id)
    return consumed.user
