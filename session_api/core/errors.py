# =============================================================================================
# SESSION_API/CORE/ERRORS.PY - ERROR KINDS AND THE HTTP ERROR BOUNDARY
# =============================================================================================
# Handlers raise AppError subclasses tagged with an ErrorKind. A single function,
# status_for(), maps kinds to HTTP status codes, and the exception handlers below
# turn every failure into the same JSON envelope:
#
#     {
#         "success": false,
#         "code": "UNAUTHORIZED",          # stable, machine-readable
#         "message": "Invalid refresh token",
#         "errors": [...]                  # only for input validation failures
#     }
#
# Passwords, hashes and secrets never reach this envelope.
# =============================================================================================

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERVER_ERROR = "SERVER_ERROR"


_STATUS_BY_KIND = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.SERVER_ERROR: 500,
}


def status_for(kind: ErrorKind) -> int:
    """The one place where an error kind becomes an HTTP status code."""
    return _STATUS_BY_KIND[kind]


def kind_for_status(status_code: int) -> ErrorKind:
    """Best-effort reverse mapping for errors raised by the framework itself."""
    for kind, code in _STATUS_BY_KIND.items():
        if code == status_code:
            return kind
    return ErrorKind.SERVER_ERROR if status_code >= 500 else ErrorKind.BAD_REQUEST


# -------------------------
# Exception hierarchy
# -------------------------
class AppError(Exception):
    kind: ErrorKind = ErrorKind.SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, errors: list[Any] | None = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return status_for(self.kind)


class BadRequestError(AppError):
    kind = ErrorKind.BAD_REQUEST
    default_message = "Bad request"


class UnauthorizedError(AppError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
    default_message = "Conflict"


class ServerError(AppError):
    kind = ErrorKind.SERVER_ERROR


# -------------------------
# Envelope + handlers
# -------------------------
def error_response(
    kind: ErrorKind,
    message: str,
    errors: list[Any] | None = None,
    status_code: int | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"success": False, "code": kind.value, "message": message}
    if errors:
        payload["errors"] = errors
    return JSONResponse(
        status_code=status_code or status_for(kind),
        content=payload,
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error boundary on the application."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.kind is ErrorKind.SERVER_ERROR:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
        return error_response(exc.kind, exc.message, exc.errors, headers=headers)

    # Request body/query validation (pydantic) → 400 with field-level details
    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        # "input" may echo a submitted password back; "ctx" may hold exception objects
        details = [
            {key: value for key, value in err.items() if key not in ("input", "ctx")}
            for err in exc.errors()
        ]
        return error_response(ErrorKind.BAD_REQUEST, "Invalid input", errors=jsonable_encoder(details))

    # Unique constraint races (e.g. two registrations with one email)
    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s", request.method, request.url.path)
        return error_response(ErrorKind.CONFLICT, "Resource already exists")

    # Framework errors: unknown routes (404), wrong methods (405), ...
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(
            kind_for_status(exc.status_code),
            str(exc.detail),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    # Catch-all: log with traceback, hide details from the client
    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(ErrorKind.SERVER_ERROR, ServerError.default_message)
