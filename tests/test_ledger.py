# =============================================================================================
# TESTS/TEST_LEDGER.PY - REFRESH TOKEN LEDGER (SERVICE LEVEL)
# =============================================================================================
# Exercises services/ledger.py directly against the test database, without HTTP.
# =============================================================================================

import threading
import time

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from conftest import valid_token_hashes

from session_api.core.db import Base
from session_api.core.errors import UnauthorizedError
from session_api.core.security import create_refresh_token, decode_refresh_token, hash_token
from session_api.models.user import User
from session_api.services.ledger import (
    consume_refresh_token,
    issue_refresh_token,
    revoke_refresh_token,
    rotate_refresh_token,
)


@pytest.fixture
def user(test_db):
    user = User(email="ledger@example.com", password_hash="x" * 60, name="Ledger", roles=["customer"])
    test_db.add(user)
    test_db.commit()
    return user


def test_new_user_has_empty_token_collection(test_db, user):
    assert valid_token_hashes(test_db, user.id) == []
    assert user.tokens == []


def test_issue_appends_hash_not_raw_token(test_db, user):
    raw = issue_refresh_token(test_db, user)
    test_db.commit()

    assert valid_token_hashes(test_db, user.id) == [hash_token(raw)]
    assert raw not in valid_token_hashes(test_db, user.id)
    assert decode_refresh_token(raw)["sub"] == user.id


def test_issue_prunes_expired_entries(test_db, user):
    issue_refresh_token(test_db, user, expires_seconds=-60)
    test_db.commit()
    assert len(valid_token_hashes(test_db, user.id)) == 1

    fresh = issue_refresh_token(test_db, user)
    test_db.commit()

    assert valid_token_hashes(test_db, user.id) == [hash_token(fresh)]


def test_rotation_removes_old_hash_and_appends_new(test_db, user):
    old = issue_refresh_token(test_db, user)
    other_session = issue_refresh_token(test_db, user)
    test_db.commit()

    rotated = rotate_refresh_token(test_db, old)

    hashes = valid_token_hashes(test_db, user.id)
    assert hash_token(old) not in hashes
    assert hash_token(rotated.refresh_token) in hashes
    # Other entries of the same user are untouched
    assert hash_token(other_session) in hashes
    assert len(hashes) == 2
    assert rotated.user.id == user.id
    assert rotated.access_token


def test_second_redemption_is_rejected_and_changes_nothing(test_db, user):
    old = issue_refresh_token(test_db, user)
    test_db.commit()
    rotated = rotate_refresh_token(test_db, old)
    before = valid_token_hashes(test_db, user.id)

    with pytest.raises(UnauthorizedError):
        rotate_refresh_token(test_db, old)

    assert valid_token_hashes(test_db, user.id) == before == [hash_token(rotated.refresh_token)]


def test_validly_signed_but_never_issued_token_is_rejected(test_db, user):
    stray = create_refresh_token(user.id)

    with pytest.raises(UnauthorizedError):
        rotate_refresh_token(test_db, stray)
    assert valid_token_hashes(test_db, user.id) == []


@pytest.mark.parametrize("raw", [None, "", "garbage"])
def test_missing_or_malformed_token_is_unauthorized(test_db, raw):
    with pytest.raises(UnauthorizedError):
        consume_refresh_token(test_db, raw)


def test_expired_token_is_unauthorized_and_ledger_unchanged(test_db, user):
    live = issue_refresh_token(test_db, user)
    test_db.commit()
    expired = create_refresh_token(user.id, expires_seconds=-5)

    with pytest.raises(UnauthorizedError):
        rotate_refresh_token(test_db, expired)
    assert valid_token_hashes(test_db, user.id) == [hash_token(live)]


def test_token_for_deleted_user_is_unauthorized(test_db, user):
    raw = issue_refresh_token(test_db, user)
    test_db.commit()
    test_db.delete(user)
    test_db.commit()

    with pytest.raises(UnauthorizedError):
        consume_refresh_token(test_db, raw)


def test_consume_reports_membership(test_db, user):
    raw = issue_refresh_token(test_db, user)
    test_db.commit()

    first = consume_refresh_token(test_db, raw)
    test_db.commit()
    second = consume_refresh_token(test_db, raw)

    assert first.was_valid is True
    assert second.was_valid is False


def test_revoke_is_a_no_op_for_consumed_token(test_db, user):
    raw = issue_refresh_token(test_db, user)
    keep = issue_refresh_token(test_db, user)
    test_db.commit()

    assert revoke_refresh_token(test_db, raw).id == user.id
    assert valid_token_hashes(test_db, user.id) == [hash_token(keep)]

    # Replaying the logout succeeds and leaves the remaining entry alone
    assert revoke_refresh_token(test_db, raw).id == user.id
    assert valid_token_hashes(test_db, user.id) == [hash_token(keep)]


# -------------------------
# Concurrent redemption
# -------------------------
@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed SQLite database, each with its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


def test_concurrent_redemptions_let_only_one_refresh_succeed(file_session_factory):
    setup = file_session_factory()
    owner = User(email="race@example.com", password_hash="x" * 60, name="Race", roles=["customer"])
    setup.add(owner)
    setup.commit()
    user_id = owner.id
    raw = issue_refresh_token(setup, owner)
    setup.commit()
    setup.close()

    # First redemption removes the entry but has not committed yet
    first = file_session_factory()
    consumed = consume_refresh_token(first, raw)
    assert consumed.was_valid is True

    outcome = []

    def redeem_again():
        second = file_session_factory()
        try:
            outcome.append(rotate_refresh_token(second, raw))
        except Exception as exc:
            outcome.append(exc)
        finally:
            second.close()

    worker = threading.Thread(target=redeem_again)
    worker.start()
    # Let the second redemption reach the database while the first holds its write
    time.sleep(0.2)

    replacement = issue_refresh_token(first, consumed.user)
    first.commit()
    first.close()

    worker.join(timeout=15)
    assert not worker.is_alive()
    assert len(outcome) == 1
    assert isinstance(outcome[0], UnauthorizedError)

    check = file_session_factory()
    try:
        assert valid_token_hashes(check, user_id) == [hash_token(replacement)]
    finally:
        check.close()
