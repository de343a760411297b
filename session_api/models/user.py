# =============================================================================================
# SESSION_API/MODELS/USER.PY - USER DATABASE MODEL
# =============================================================================================
# A user record: credentials, display name, role tags and the collection of
# currently-valid refresh-token entries (see models/token.py).
#
# INVARIANT:
# - user.tokens holds at most one entry per issued, unrevoked refresh token
# - entries are deleted on invalidation, never updated in place
# =============================================================================================

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship

from session_api.core.db import Base


class User(Base):
    """
    User account model.

    DATABASE TABLE:
        CREATE TABLE users (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(255) NOT NULL UNIQUE,
            password_hash VARCHAR(60) NOT NULL,
            name VARCHAR(255) NOT NULL,
            roles JSON NOT NULL,
            created_at TIMESTAMP NOT NULL
        );
    """

    __tablename__ = "users"

    id: str = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
        nullable=False,
    )

    # Normalized by the input schemas (EmailStr) before it gets here
    email: str = Column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )

    # bcrypt hash ("$2b$12$..."), 60 characters
    password_hash: str = Column(String(60), nullable=False)

    # Stored raw; HTML-escaped on the way out
    name: str = Column(String(255), nullable=False, default="")

    roles: list = Column(JSON, nullable=False, default=lambda: ["customer"])

    created_at: datetime = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # -------------------------
    # Refresh-token collection (oldest first)
    # -------------------------
    # passive_deletes: the database's ON DELETE CASCADE removes the entries
    tokens = relationship(
        "RefreshToken",
        back_populates="user",
        order_by="RefreshToken.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
