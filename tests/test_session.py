"""Tests for the session snapshot stored in the signed cookie."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from bugtrack.core import User
from bugtrack.session import SESSION_TTL, SessionContext

NOW = datetime(2026, 5, 4, 9, 30, tzinfo=UTC)


def _user(role: str = "reporter") -> User:
    return User(id="bug-u-1", name="Alice", email="alice@example.com", password_hash="h", role=role)


class TestSessionContext:
    def test_start_snapshots_user(self) -> None:
        ctx = SessionContext.start(_user("admin"), now=NOW)
        assert ctx.user_id == "bug-u-1"
        assert ctx.user_name == "Alice"
        assert ctx.is_admin
        assert ctx.issued_at == NOW

    def test_ttl_is_24_hours(self) -> None:
        assert SESSION_TTL == timedelta(hours=24)
        assert SessionContext.start(_user(), now=NOW).expires_at == NOW + timedelta(hours=24)

    def test_expiry_boundary(self) -> None:
        ctx = SessionContext.start(_user(), now=NOW)
        assert not ctx.is_expired(NOW + timedelta(hours=23, minutes=59))
        assert ctx.is_expired(NOW + timedelta(hours=24))
        assert ctx.is_expired(NOW + timedelta(days=3))

    def test_current_user_has_no_email(self) -> None:
        ctx = SessionContext.start(_user(), now=NOW)
        assert ctx.current_user() == {"id": "bug-u-1", "name": "Alice", "role": "reporter"}


class TestCookie:
    def test_round_trip(self) -> None:
        ctx = SessionContext.start(_user(), now=NOW)
        assert SessionContext.from_cookie(ctx.to_cookie()) == ctx

    @pytest.mark.parametrize(
        "data",
        [
            None,
            "bug-u-1",
            {},
            {"user_id": "bug-u-1", "user_name": "Alice", "role": "reporter"},
            {"user_id": "bug-u-1", "user_name": "Alice", "role": "root", "issued_at": NOW.isoformat()},
            {"user_id": "bug-u-1", "user_name": "Alice", "role": "reporter", "issued_at": "yesterday"},
            {"user_id": "bug-u-1", "user_name": "Alice", "role": "reporter", "issued_at": "2026-05-04T09:30:00"},
            {"user_id": "", "user_name": "Alice", "role": "reporter", "issued_at": NOW.isoformat()},
        ],
    )
    def test_malformed_is_none(self, data: object) -> None:
        assert SessionContext.from_cookie(data) is None
