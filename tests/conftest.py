# =============================================================================================
# TESTS/CONFTEST.PY - SHARED FIXTURES
# =============================================================================================
# - Environment is configured BEFORE the app is imported (settings are cached on first use)
# - In-memory SQLite with StaticPool: every session, in every thread, sees one database
# - get_db is overridden so endpoints use the test database
# - Uploads go to a per-test temporary directory
# =============================================================================================

import os

os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
# TestClient talks plain http; a Secure cookie would never be sent back
os.environ.setdefault("REFRESH_COOKIE_SECURE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from session_api.core.config import get_settings
from session_api.core.db import Base, get_db
from session_api.main import app
from session_api.models import RefreshToken  # also registers both tables on Base.metadata

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable SQLite foreign keys for CASCADE deletes to work in tests."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

settings = get_settings()

COOKIE_NAME = settings.REFRESH_COOKIE_NAME


@pytest.fixture
def test_db():
    """Fresh schema per test; the session is for assertions from the test body."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(test_db):
    """TestClient whose requests each get their own session on the test database."""

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point temp upload storage at a per-test directory."""
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_TEMP_DIR", str(target))
    return target


# -------------------------
# Helpers
# -------------------------
def register_user(client, email="a@b.com", password="P@ssw0rd!", name="Alice"):
    response = client.post("/auth/register", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    return response.json()["user"]


def login_user(client, email="a@b.com", password="P@ssw0rd!"):
    """Log in; returns (response body, raw refresh token from Set-Cookie)."""
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json(), response.cookies.get(COOKIE_NAME)


def valid_token_hashes(db, user_id):
    """Current ledger contents for a user, oldest first."""
    rows = db.query(RefreshToken.token_hash).filter(
        RefreshToken.user_id == user_id
    ).order_by(RefreshToken.created_at).all()
    return [row.token_hash for row in rows]


def use_refresh_cookie(client, token):
    """Make the client present exactly this refresh token on the next requests."""
    client.cookies.clear()
    if token is not None:
        client.cookies.set(COOKIE_NAME, token)


@pytest.fixture
def registered_user(client):
    return register_user(client)


@pytest.fixture
def auth_headers(client, registered_user):
    body, _ = login_user(client)
    return {"Authorization": f"Bearer {body['accessToken']}"}
