# =============================================================================================
# SESSION_API/MAIN.PY - FASTAPI APPLICATION
# =============================================================================================
# Entry point of the web API:
# - Session endpoints under /auth (register, login, refresh, logout, profile)
# - File upload gate at /upload
# - One error boundary: every failure leaves as {success: false, code, message}
#
# ARCHITECTURE:
# - SQLAlchemy: users and their refresh-token ledger
# - Local disk: uploaded files (UPLOAD_TEMP_DIR)
# - JWT: access tokens (stateless) + refresh tokens (hash stored, rotated on use)
#
# RUN:
#   uvicorn session_api.main:app --reload
# =============================================================================================

import logging

from fastapi import FastAPI

from session_api.core.config import get_settings
from session_api.core.db import init_db
from session_api.core.errors import register_exception_handlers
from session_api.routers import auth, upload

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Session API",
    description="User sessions with rotating refresh tokens, plus a validated file upload",
    version="1.0.0",
)


@app.on_event("startup")
def on_startup():
    """Create the users and refresh_tokens tables if they don't exist yet."""
    init_db()


register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(upload.router)
