"""Session context carried by every authenticated request.

A :class:`SessionContext` is a snapshot of who logged in: user id, display
name, and role as they were at login time. It is stored in the signed
session cookie and rebuilt on each request; the role is never re-read from
the store, so a role change only takes effect at the next login.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from bugtrack.db_base import VALID_ROLES

if TYPE_CHECKING:
    from bugtrack.core import User

SESSION_TTL = timedelta(hours=24)

_COOKIE_KEYS = ("user_id", "user_name", "role", "issued_at")


@dataclass(frozen=True)
class SessionContext:
    user_id: str
    user_name: str
    role: str
    issued_at: datetime

    @classmethod
    def start(cls, user: User, *, now: datetime | None = None) -> SessionContext:
        return cls(
            user_id=user.id,
            user_name=user.name,
            role=user.role,
            issued_at=now or datetime.now(UTC),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + SESSION_TTL

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at

    def to_cookie(self) -> dict[str, str]:
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "role": self.role,
            "issued_at": self.issued_at.isoformat(),
        }

    @classmethod
    def from_cookie(cls, data: Any) -> SessionContext | None:
        """Rebuild a context from cookie data; ``None`` if absent or malformed."""
        if not isinstance(data, dict):
            return None
        if not all(isinstance(data.get(k), str) and data.get(k) for k in _COOKIE_KEYS):
            return None
        if data["role"] not in VALID_ROLES:
            return None
        try:
            issued_at = datetime.fromisoformat(data["issued_at"])
        except ValueError:
            return None
        if issued_at.tzinfo is None:
            return None
        return cls(
            user_id=data["user_id"],
            user_name=data["user_name"],
            role=data["role"],
            issued_at=issued_at,
        )

    def current_user(self) -> dict[str, str]:
        """Public view of the session for templates and JSON view models."""
        return {"id": self.user_id, "name": self.user_name, "role": self.role}
