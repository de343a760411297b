# =============================================================================================
# SESSION_API/CORE/DB.PY - SQLALCHEMY DATABASE ENGINE AND SESSION MANAGEMENT
# =============================================================================================
# The credential store: users and their refresh-token entries live here.
#
# KEY CONCEPTS:
# - Engine: connection pool to the database (created once at import)
# - SessionLocal: factory for per-request sessions
# - Base: parent class for all ORM models (User, RefreshToken)
# - get_db(): FastAPI dependency that provides a session per request
#
# FLOW:
# 1. Engine connects to DATABASE_URL from config
# 2. Each request calls get_db() to get a fresh session
# 3. Handlers read/modify rows and decide when to commit
# 4. Session closes after the request (even if an error occurred)
# =============================================================================================

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from session_api.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# -------------------------
# STEP 1: Create the database engine
# -------------------------
_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# check_same_thread=False: FastAPI runs sync endpoints in a thread pool
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    pool_pre_ping=True,
)


# -------------------------
# SQLITE PRAGMAS: foreign keys + WAL
# -------------------------
# Foreign keys are OFF by default in SQLite; the refresh_tokens → users
# cascade depends on them.
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Configure SQLite connection settings on each new connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA synchronous=NORMAL;")
    cursor.close()


if _is_sqlite:
    event.listen(engine, "connect", set_sqlite_pragma)


# -------------------------
# STEP 2: Create session factory
# -------------------------
# autocommit=False: the ledger groups "remove old hash" and "append new hash"
# into one transaction and commits once.
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# -------------------------
# STEP 3: Declarative base for models
# -------------------------
Base = declarative_base()


# -------------------------
# STEP 4: Dependency for FastAPI routes
# -------------------------
def get_db() -> Session:
    """
    FastAPI dependency that provides a database session for each request.

    LIFECYCLE:
    1. Request arrives at an endpoint using Depends(get_db)
    2. A new session is created and injected
    3. After the handler returns (or raises), the session is closed

    Uncommitted work is discarded on close, so a handler that raises halfway
    through the ledger protocol leaves the token collection untouched.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# -------------------------
# STEP 5: Database initialization helper
# -------------------------
def init_db() -> None:
    """
    Create all tables defined in models (CREATE TABLE IF NOT EXISTS).

    Called on application startup; tests call Base.metadata.create_all on
    their own engine instead.
    """
    from session_api.models import user, token  # noqa: F401 (imported for side effects)

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s)", engine.url.render_as_string(hide_password=True))
