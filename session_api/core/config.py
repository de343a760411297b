# =============================================================================================
# SESSION_API/CORE/CONFIG.PY - CENTRALIZED CONFIGURATION WITH PYDANTIC SETTINGS
# =============================================================================================
# Every tunable of the service lives here and is read from the environment (or .env):
# - Database connection string
# - Token secrets and lifetimes (access + refresh are signed with DIFFERENT secrets)
# - Refresh-token cookie attributes
# - Upload gate parameters (minimum size, MIME allow-list, public path)
#
# FLOW:
# 1. Process environment / .env is loaded by pydantic-settings
# 2. Values are parsed into typed fields (e.g. "3600" → 3600)
# 3. get_settings() caches the instance; it is read-only after startup
# =============================================================================================

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Secrets (ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET) have no defaults: the
    process refuses to start without them instead of signing tokens with a
    guessable key.

    USAGE EXAMPLE:
        from session_api.core.config import get_settings
        settings = get_settings()
        print(settings.REFRESH_COOKIE_NAME)
    """

    # -------------------------
    # DATABASE CONFIGURATION
    # -------------------------
    DATABASE_URL: str = "sqlite:///./dev.db"

    # -------------------------
    # TOKEN SETTINGS
    # -------------------------
    # Access tokens: stateless, short-lived (1 hour)
    ACCESS_TOKEN_SECRET: str
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 3600

    # Refresh tokens: signed with their own secret, which is also the HMAC key
    # for the hashes stored in the refresh-token ledger
    REFRESH_TOKEN_SECRET: str
    REFRESH_TOKEN_EXPIRE_SECONDS: int = 2592000  # 30 days

    JWT_ALGORITHM: str = "HS256"

    # -------------------------
    # PASSWORD HASHING (BCRYPT)
    # -------------------------
    # 4 is bcrypt's minimum cost; tests use it, production should stay at 10+
    BCRYPT_ROUNDS: int = 12

    # -------------------------
    # REFRESH TOKEN COOKIE
    # -------------------------
    REFRESH_COOKIE_NAME: str = "refreshToken"
    REFRESH_COOKIE_DOMAIN: str | None = None
    REFRESH_COOKIE_PATH: str = "/"
    REFRESH_COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"
    REFRESH_COOKIE_SECURE: bool = True

    # -------------------------
    # USERS
    # -------------------------
    DEFAULT_ROLES: list[str] = ["customer"]

    # -------------------------
    # UPLOADS
    # -------------------------
    # Public prefix of the returned fileName: "/<UPLOAD_PATH>/<stored name>"
    UPLOAD_PATH: str = "uploads"
    # Where the multipart body is written before validation
    UPLOAD_TEMP_DIR: str = "./tmp/uploads"
    UPLOAD_MIN_SIZE: int = 2048
    UPLOAD_ALLOWED_MIME_TYPES: list[str] = [
        "image/png",
        "image/jpeg",
        "image/gif",
        "image/webp",
    ]

    # -------------------------
    # LOGGING
    # -------------------------
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Returns a singleton Settings instance (cached after first call).

    TESTING:
    Environment variables must be in place before the first call; tests set
    them in tests/conftest.py before importing the application.
    """
    return Settings()
