# =============================================================================================
# SESSION_API/ROUTERS/AUTH.PY - SESSION ENDPOINTS
# =============================================================================================
# - POST  /auth/register     Create a user account
# - POST  /auth/login        Verify credentials, issue access token + refresh cookie
# - GET   /auth/token        Redeem the refresh cookie once, get a new token pair
# - GET   /auth/logout       Invalidate the refresh cookie's token and clear the cookie
# - GET   /auth/user         Current user's profile
# - GET   /auth/user/roles   Current user's role tags
# - PATCH /auth/me           Merge-patch the current user's profile
#
# AUTHENTICATION FLOW:
# 1. Register: POST /auth/register → user data
# 2. Login: POST /auth/login → accessToken in body, refresh token in httpOnly cookie
# 3. Protected routes: Authorization: Bearer <accessToken>
# 4. Access token expires: GET /auth/token (cookie) → new accessToken + rotated cookie
# 5. Logout: GET /auth/logout (cookie) → token removed from the ledger, cookie cleared
#
# The handlers only orchestrate; the rotation protocol lives in services/ledger.py.
# =============================================================================================

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from session_api.core.config import get_settings
from session_api.core.cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from session_api.core.db import get_db
from session_api.core.deps import Identity, get_current_identity
from session_api.core.errors import BadRequestError, ConflictError, NotFoundError
from session_api.core.security import create_access_token, hash_password, verify_password
from session_api.models.user import User
from session_api.schemas.auth import AuthOut, SuccessOut, UserEnvelopeOut
from session_api.schemas.user import LoginIn, RegisterIn, UserOut, UserUpdateIn
from session_api.services.ledger import issue_refresh_token, revoke_refresh_token, rotate_refresh_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)

settings = get_settings()

INVALID_CREDENTIALS = "Invalid email or password"
USER_NOT_FOUND = "User with the given id does not exist"
EMAIL_TAKEN = "Email already registered"


def _load_user(db: Session, identity: Identity) -> User:
    """Resolve the authenticated identity to a user row, 404 if it is gone."""
    user = db.get(User, identity.user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


def _email_taken(db: Session, email: str, exclude_id: str | None = None) -> bool:
    query = db.query(User).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


# =============================================================================================
# ENDPOINT 1: Register new user
# =============================================================================================

@router.post("/register", response_model=UserEnvelopeOut, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterIn,
    db: Session = Depends(get_db),
):
    """
    Create a new user account.

    FLOW:
    1. Body is validated by RegisterIn (400 with "errors" otherwise)
    2. Reject an email that is already registered (400)
    3. Hash the password with bcrypt
    4. Persist the user with an empty refresh-token collection
    5. Return the public user data (name HTML-escaped, no hash)
    """
    if _email_taken(db, data.email):
        raise BadRequestError(EMAIL_TAKEN)

    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        name=data.name,
        roles=list(settings.DEFAULT_ROLES),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent registration took the email after the check above
        db.rollback()
        raise BadRequestError(EMAIL_TAKEN)
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return UserEnvelopeOut(user=UserOut.model_validate(user))


# =============================================================================================
# ENDPOINT 2: Login
# =============================================================================================

@router.post("/login", response_model=AuthOut)
def login(
    data: LoginIn,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Authenticate a user.

    FLOW:
    1. Find user by email
    2. Verify the password against the stored hash
    3. Issue an access token
    4. Issue a refresh token, append its hash to the ledger, set the cookie

    ERRORS:
        400 Bad Request: same message for unknown email and wrong password
    """
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.password_hash):
        logger.info("Failed login attempt")
        raise BadRequestError(INVALID_CREDENTIALS)

    refresh_token = issue_refresh_token(db, user)
    db.commit()
    db.refresh(user)
    set_refresh_cookie(response, refresh_token)

    logger.info("User %s logged in", user.id)
    return AuthOut(
        user=UserOut.model_validate(user),
        access_token=create_access_token(user.id),
    )


# =============================================================================================
# ENDPOINT 3: Refresh (rotate the refresh token)
# =============================================================================================

@router.get("/token", response_model=AuthOut)
def refresh_access_token(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Exchange the refresh cookie for a new access token and a new refresh cookie.

    ERRORS:
        401 Unauthorized: cookie missing, token invalid/expired, user unknown,
                          or token already redeemed. The ledger is unchanged.
    """
    rotated = rotate_refresh_token(db, read_refresh_cookie(request))
    set_refresh_cookie(response, rotated.refresh_token)
    return AuthOut(
        user=UserOut.model_validate(rotated.user),
        access_token=rotated.access_token,
    )


# =============================================================================================
# ENDPOINT 4: Logout
# =============================================================================================

@router.get("/logout", response_model=SuccessOut)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Remove the cookie's refresh token from the ledger and clear the cookie.

    A token that verifies but is no longer in the ledger still logs out
    successfully; the cookie is cleared either way.

    ERRORS:
        401 Unauthorized: cookie missing, token invalid/expired, or user unknown
    """
    user = revoke_refresh_token(db, read_refresh_cookie(request))
    clear_refresh_cookie(response)
    logger.info("User %s logged out", user.id)
    return SuccessOut()


# =============================================================================================
# ENDPOINT 5: Current user profile
# =============================================================================================

@router.get("/user", response_model=UserEnvelopeOut)
def get_current_user(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return UserEnvelopeOut(user=UserOut.model_validate(_load_user(db, identity)))


@router.get("/user/roles", response_model=list[str])
def get_current_user_roles(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return list(_load_user(db, identity).roles or [])


@router.patch("/me", response_model=UserEnvelopeOut)
def update_current_user(
    patch: UserUpdateIn,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Merge-patch the current user's profile.

    Only keys present in the body are applied. "null" is not a valid value
    for either field.

    ERRORS:
        400 Bad Request: unknown key or invalid value
        404 Not Found: the user no longer exists
        409 Conflict: the new email belongs to another account
    """
    user = _load_user(db, identity)
    changes = patch.model_dump(exclude_unset=True)

    if any(value is None for value in changes.values()):
        raise BadRequestError("Profile fields cannot be null")

    new_email = changes.get("email")
    if new_email and new_email != user.email:
        if _email_taken(db, new_email, exclude_id=user.id):
            raise ConflictError(EMAIL_TAKEN)

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)

    logger.info("Updated profile of user %s (%s)", user.id, ", ".join(sorted(changes)) or "no changes")
    return UserEnvelopeOut(user=UserOut.model_validate(user))
