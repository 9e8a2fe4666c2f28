from datetime import datetime, timedelta, timezone

from app.enums.enums import TokenFailure
from app.models.models import SessionToken

EMAIL = "ana@empresa.cl"


def test_issue_creates_opaque_token(db, token_auth, vault):
    session = token_auth.issue(db, EMAIL, "admin")

    assert len(session.token) == 64
    int(session.token, 16)
    assert session.active
    assert vault.decrypt(session.email) == EMAIL
    assert session.expires_at - session.created_at == timedelta(minutes=60)


def test_issue_reuses_usable_token(db, token_auth):
    first = token_auth.issue(db, EMAIL, "admin")
    second = token_auth.issue(db, "ANA@empresa.cl ", "admin")

    assert second.token == first.token
    assert db.query(SessionToken).count() == 1


def test_issue_with_other_role_revokes_previous(db, token_auth):
    first = token_auth.issue(db, EMAIL, "admin")
    second = token_auth.issue(db, EMAIL, "usuario")

    db.refresh(first)
    assert second.token != first.token
    assert not first.active
    assert first.revoked_at is not None


def test_validate_success(db, token_auth):
    session = token_auth.issue(db, EMAIL, "admin")

    result = token_auth.validate(db, session.token, email=EMAIL, role="admin")

    assert result.valid
    assert result.email == EMAIL
    assert result.role == "admin"


def test_validate_unknown_token(db, token_auth):
    result = token_auth.validate(db, "f" * 64)
    assert not result.valid
    assert result.reason == TokenFailure.not_found


def test_validate_identity_and_role_mismatch(db, token_auth):
    session = token_auth.issue(db, EMAIL, "admin")

    assert token_auth.validate(db, session.token, email="otra@empresa.cl").reason == TokenFailure.identity_mismatch
    assert token_auth.validate(db, session.token, role="usuario").reason == TokenFailure.role_mismatch
    assert db.query(SessionToken).count() == 1


def test_expired_token_is_deleted(db, token_auth, clock):
    session = token_auth.issue(db, EMAIL, "admin")
    token = session.token

    clock.now = clock.now + timedelta(minutes=61)
    result = token_auth.validate(db, token)

    assert result.reason == TokenFailure.expired
    assert db.query(SessionToken).filter_by(token=token).first() is None


def test_token_from_previous_day_is_deleted(db, vault, settings, clock):
    from app.services.session_service import TokenAuth

    # 23:50 en Santiago; 20 minutos después ya es otro día local
    clock.now = datetime(2024, 5, 11, 3, 50, tzinfo=timezone.utc)
    token_auth = TokenAuth(vault, 120, settings.timezone, clock=clock)
    session = token_auth.issue(db, EMAIL, "admin")
    token = session.token

    clock.now = clock.now + timedelta(minutes=20)
    result = token_auth.validate(db, token)

    assert result.reason == TokenFailure.other_day
    assert db.query(SessionToken).filter_by(token=token).first() is None


def test_same_local_day_across_utc_midnight_is_valid(db, vault, settings, clock):
    from app.services.session_service import TokenAuth

    # 19:30 y 20:30 en Santiago cruzan la medianoche UTC
    clock.now = datetime(2024, 5, 10, 23, 30, tzinfo=timezone.utc)
    token_auth = TokenAuth(vault, 120, settings.timezone, clock=clock)
    session = token_auth.issue(db, EMAIL, "admin")

    clock.now = clock.now + timedelta(hours=1)
    assert token_auth.validate(db, session.token).valid


def test_revoke_keeps_record_inactive(db, token_auth):
    session = token_auth.issue(db, EMAIL, "admin")

    token_auth.revoke(db, session.token)
    result = token_auth.validate(db, session.token)

    assert result.reason == TokenFailure.revoked
    stored = db.query(SessionToken).filter_by(token=session.token).first()
    assert stored is not None
    assert not stored.active
    assert stored.revoked_at is not None


def test_revoke_unknown_token(db, token_auth):
    import pytest
    from app.core.exceptions import NotFoundError

    with pytest.raises(NotFoundError):
        token_auth.revoke(db, "0" * 64)
