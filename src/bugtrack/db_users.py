"""UsersMixin: the credential store.

All methods access ``self.conn`` via Python's MRO when composed into
``BugTrackerDB``. Password verification lives in ``bugtrack.auth``; this
mixin only persists the opaque hash.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from bugtrack.db_base import DBMixinProtocol, _now_iso
from bugtrack.errors import DuplicateEmail, NotFound, ValidationError
from bugtrack.validation import check_choice, sanitize_name

if TYPE_CHECKING:
    from bugtrack.core import User

logger = logging.getLogger(__name__)


def _build_user(row: sqlite3.Row) -> User:
    from bugtrack.core import User

    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=row["role"],
        created_at=row["created_at"],
    )


class UsersMixin(DBMixinProtocol):
    """User creation and lookup.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    """

    def create_user(self, name: str, email: str, password_hash: str, *, role: str = "reporter") -> User:
        cleaned_name, err = sanitize_name(name)
        if err:
            raise ValidationError(err)
        if not email or not email.strip():
            msg = "email must not be empty"
            raise ValidationError(msg)
        if not password_hash:
            msg = "password hash must not be empty"
            raise ValidationError(msg)
        _, err = check_choice(role, ("reporter", "admin"), "role")
        if err:
            raise ValidationError(err)

        # Exact match: "A@x.com" and "a@x.com" are different accounts.
        if self.find_user_by_email(email) is not None:
            raise DuplicateEmail(email)

        user_id = self._generate_unique_id("users", infix="u")
        now = _now_iso()
        try:
            self.conn.execute(
                "INSERT INTO users (id, name, email, password_hash, role, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, cleaned_name, email, password_hash, role, now),
            )
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            # Lost a race with a concurrent registration for the same email.
            if "users.email" in str(exc):
                raise DuplicateEmail(email) from exc
            raise
        self.conn.commit()
        logger.info("Created user %s (role=%s)", user_id, role)
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> User:
        row = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            raise NotFound("User", user_id)
        return _build_user(row)

    def find_user_by_email(self, email: str) -> User | None:
        row = self.conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        return _build_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        rows = self.conn.execute("SELECT * FROM users ORDER BY created_at DESC, id DESC").fetchall()
        return [_build_user(r) for r in rows]
