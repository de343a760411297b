# =============================================================================================
# SESSION_API/MODELS/TOKEN.PY - REFRESH TOKEN LEDGER ENTRY
# =============================================================================================
# One row per currently-valid refresh token: the {token: hash} entries of a user's
# token collection.
#
# LIFECYCLE:
# 1. Login/refresh mints a refresh token → hash_token(raw) is inserted here
# 2. Logout/refresh presents the token → the row with that hash is DELETED
# 3. A token whose row is gone can never be redeemed again (rotation)
#
# The raw token is never stored; only its HMAC-SHA256 hex digest.
# =============================================================================================

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from session_api.core.db import Base


class RefreshToken(Base):
    """
    Refresh-token ledger entry.

    DATABASE TABLE:
        CREATE TABLE refresh_tokens (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash VARCHAR(64) NOT NULL UNIQUE,
            expires_at TIMESTAMP NOT NULL,
            created_at TIMESTAMP NOT NULL
        );

    COLUMNS:
    - token_hash: HMAC-SHA256 of the raw refresh token (64 hex chars)
    - expires_at: copy of the token's exp claim, used to prune dead entries
    """

    __tablename__ = "refresh_tokens"

    id: str = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )

    user_id: str = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    token_hash: str = Column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )

    expires_at: datetime = Column(DateTime, nullable=False, index=True)

    created_at: datetime = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    user = relationship("User", back_populates="tokens", lazy="select")

    # Consumption filters on (user_id, token_hash)
    __table_args__ = (
        Index("ix_refresh_tokens_user_hash", "user_id", "token_hash"),
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id})>"
