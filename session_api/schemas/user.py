# =============================================================================================
# SESSION_API/SCHEMAS/USER.PY - PYDANTIC SCHEMAS FOR USER REQUESTS/RESPONSES
# =============================================================================================
# SCHEMA TYPES:
# - RegisterIn: input for /auth/register (email + password + optional display name)
# - LoginIn: input for /auth/login (email + password)
# - UserUpdateIn: merge-patch body for PATCH /auth/me (only mutable profile fields)
# - UserOut: public user data (never the password hash or token hashes)
#
# FLOW:
# 1. Client sends JSON → pydantic validates (failures become 400 with "errors")
# 2. Route works with the SQLAlchemy User
# 3. Route returns UserOut inside the response envelope
# =============================================================================================

import html
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer


# =============================================================================================
# INPUT SCHEMAS (Request bodies)
# =============================================================================================

class RegisterIn(BaseModel):
    """
    Schema for user registration requests.

    USAGE:
        POST /auth/register
        {
            "email": "alice@example.com",
            "password": "P@ssw0rd!",
            "name": "Alice"
        }
    """

    email: EmailStr = Field(
        ...,
        description="User's email address (used for login)",
        examples=["alice@example.com"],
    )

    password: str = Field(
        ...,
        min_length=8,
        max_length=72,  # bcrypt only looks at the first 72 bytes
        description="User's password (will be hashed, minimum 8 characters)",
        examples=["P@ssw0rd!"],
    )

    name: str = Field(
        default="",
        max_length=255,
        description="Display name",
        examples=["Alice"],
    )


class LoginIn(BaseModel):
    """
    Schema for user login requests.

    No length rule on password here: login only verifies what it is given.
    """

    email: EmailStr = Field(..., examples=["alice@example.com"])
    password: str = Field(..., examples=["P@ssw0rd!"])


class UserUpdateIn(BaseModel):
    """
    Merge-patch body for the current user's profile.

    Only keys present in the body are applied; unknown keys are rejected so a
    client can't patch password_hash, roles or the token collection.
    """

    email: EmailStr | None = None
    name: str | None = Field(default=None, max_length=255)

    model_config = ConfigDict(extra="forbid")


# =============================================================================================
# OUTPUT SCHEMAS (Response bodies)
# =============================================================================================

class UserOut(BaseModel):
    """
    Schema for user data in API responses.

    The display name is HTML-escaped on output: it is user-controlled and
    frontends render it.
    """

    id: str = Field(..., examples=["123e4567-e89b-12d3-a456-426614174000"])
    email: EmailStr = Field(..., examples=["alice@example.com"])
    name: str = Field(default="", examples=["Alice"])
    roles: list[str] = Field(default_factory=list, examples=[["customer"]])
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    # JSON mode only: the escape must run exactly once per response
    @field_serializer("name", when_used="json")
    def escape_name(self, value: str) -> str:
        return html.escape(value or "")
