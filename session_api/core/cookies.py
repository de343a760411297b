# =============================================================================================
# SESSION_API/CORE/COOKIES.PY - REFRESH TOKEN COOKIE
# =============================================================================================
# The raw refresh token only ever travels in this cookie. Name and attributes come
# from settings; the cookie is always httpOnly so page scripts can't read it.
# =============================================================================================

from fastapi import Request, Response

from session_api.core.config import get_settings

settings = get_settings()


def _cookie_options() -> dict:
    return {
        "domain": settings.REFRESH_COOKIE_DOMAIN,
        "path": settings.REFRESH_COOKIE_PATH,
        "secure": settings.REFRESH_COOKIE_SECURE,
        "httponly": True,
        "samesite": settings.REFRESH_COOKIE_SAMESITE,
    }


def read_refresh_cookie(request: Request) -> str | None:
    """Return the raw refresh token sent by the client, or None if absent/empty."""
    return request.cookies.get(settings.REFRESH_COOKIE_NAME) or None


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_SECONDS,
        **_cookie_options(),
    )


def clear_refresh_cookie(response: Response) -> None:
    """Overwrite the cookie with an empty, already-expired value."""
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        "",
        max_age=-1,
        **_cookie_options(),
    )
