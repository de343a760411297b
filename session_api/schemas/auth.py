# =============================================================================================
# SESSION_API/SCHEMAS/AUTH.PY - RESPONSE ENVELOPES FOR SESSION ENDPOINTS
# =============================================================================================
# Every success body has the shape {success: true, user?, accessToken?}.
# The refresh token is NOT part of any body: it only travels in the httpOnly cookie.
#
# TOKEN LIFECYCLE:
# 1. Login: AuthOut (access token) + refresh cookie set
# 2. API calls: client sends access token in Authorization header
# 3. Access expires: GET /auth/token with the cookie → new AuthOut + new cookie
# 4. Logout: GET /auth/logout with the cookie → SuccessOut + cookie cleared
# =============================================================================================

from pydantic import BaseModel, ConfigDict, Field

from session_api.schemas.user import UserOut


class SuccessOut(BaseModel):
    success: bool = True


class UserEnvelopeOut(SuccessOut):
    """Response for register, get-current-user and profile update."""

    user: UserOut


class AuthOut(UserEnvelopeOut):
    """
    Response for login and refresh.

    RESPONSE EXAMPLE:
        {
            "success": true,
            "user": {"id": "...", "email": "alice@example.com", "name": "Alice", "roles": ["customer"]},
            "accessToken": "eyJhbGci..."
        }
    """

    access_token: str = Field(
        ...,
        alias="accessToken",
        description="JWT access token for API authentication (1 hour)",
    )

    model_config = ConfigDict(populate_by_name=True)
