from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from storefront.auth import (
    AdminAuth,
    AdminAuthError,
    AdminLockedOut,
    AdminNotConfigured,
    hash_password,
    new_token,
    verify_password,
)


class Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kw):
        self.now += timedelta(**kw)


@pytest.fixture
def clock():
    return Clock()


def test_password_hash_roundtrip():
    h = hash_password("wonderland")
    assert h.startswith("$argon2")
    assert verify_password("wonderland", h)
    assert not verify_password("Wonderland", h)


def test_malformed_hash_never_matches():
    assert verify_password("x", "not-a-hash") is False


def test_tokens_are_random_hex():
    a, b = new_token(), new_token()
    assert a != b
    assert len(a) == 64
    int(a, 16)


def test_admin_accepts_plain_or_hashed_password():
    assert AdminAuth("admin", "s3cret").check_credentials("admin", "s3cret") == "admin"
    assert AdminAuth("admin", hash_password("s3cret")).check_credentials("admin", "s3cret") == "admin"
    with pytest.raises(AdminAuthError):
        AdminAuth("admin", "s3cret").check_credentials("root", "s3cret")


def test_admin_without_password_is_refused():
    with pytest.raises(AdminNotConfigured):
        AdminAuth("admin", None).check_credentials("admin", "anything")


def test_lockout_after_repeated_failures(clock):
    admin = AdminAuth("admin", "s3cret", now=clock)
    for _ in range(5):
        with pytest.raises(AdminAuthError):
            admin.check_credentials("admin", "wrong", "10.0.0.1")

    with pytest.raises(AdminLockedOut) as exc:
        admin.check_credentials("admin", "s3cret", "10.0.0.1")
    assert exc.value.retry_after == 15 * 60

    # other clients are not affected
    assert admin.check_credentials("admin", "s3cret", "10.0.0.2") == "admin"

    clock.advance(minutes=15, seconds=1)
    assert admin.check_credentials("admin", "s3cret", "10.0.0.1") == "admin"


def test_success_resets_failure_count(clock):
    admin = AdminAuth("admin", "s3cret", now=clock)
    for _ in range(4):
        with pytest.raises(AdminAuthError):
            admin.check_credentials("admin", "wrong")
    admin.check_credentials("admin", "s3cret")
    for _ in range(4):
        with pytest.raises(AdminAuthError):
            admin.check_credentials("admin", "wrong")
    assert admin.check_credentials("admin", "s3cret") == "admin"


def test_admin_sessions_expire(clock):
    admin = AdminAuth("admin", "s3cret", session_hours=8, now=clock)
    token, expires_at = admin.open_session("admin")
    assert expires_at == clock.now + timedelta(hours=8)
    assert admin.session_user(token) == "admin"

    clock.advance(hours=8)
    assert admin.session_user(token) is None
    assert admin.session_user("unknown") is None


def test_close_admin_session(clock):
    admin = AdminAuth("admin", "s3cret", now=clock)
    token, _ = admin.open_session("admin")
    admin.close_session(token)
    admin.close_session(token)
    assert admin.session_user(token) is None
