"""Registration and login.

Passwords are stored only as bcrypt hashes. A successful login returns a
fresh :class:`~bugtrack.session.SessionContext`; the web layer is
responsible for putting it in the session cookie.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

import bcrypt

from bugtrack.errors import InvalidCredentials, UserNotFound, ValidationError
from bugtrack.session import SessionContext
from bugtrack.validation import coerce_role, is_blank

if TYPE_CHECKING:
    from bugtrack.core import BugTrackerDB, User

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes and newer releases reject longer input.
_BCRYPT_MAX_BYTES = 72


def hash_password(plain: str) -> str:
    password_bytes = plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, password_hash: str) -> bool:
    password_bytes = plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        logger.warning("Unverifiable password hash encountered")
        return False


def register(db: BugTrackerDB, *, name: Any, email: Any, password: Any, role: Any = None) -> User:
    """Create an account.

    Raises ``ValidationError`` if any of name/email/password is empty and
    ``DuplicateEmail`` if the email is taken. The role is self-selected but
    limited to reporter/admin; anything else becomes reporter.
    """
    if any(is_blank(v) or not isinstance(v, str) for v in (name, email, password)):
        msg = "Please fill all fields"
        raise ValidationError(msg)
    user = db.create_user(name, email, hash_password(password), role=coerce_role(role))
    logger.info("Registered user %s", user.id)
    return user


def login(db: BugTrackerDB, *, email: Any, password: Any, now: datetime | None = None) -> SessionContext:
    """Verify credentials and start a new session.

    Raises ``UserNotFound`` for an unknown email and ``InvalidCredentials``
    for a wrong password.
    """
    if not isinstance(email, str) or not email:
        raise UserNotFound(str(email))
    user = db.find_user_by_email(email)
    if user is None:
        raise UserNotFound(email)
    if not isinstance(password, str) or not verify_password(password, user.password_hash):
        logger.warning("Failed login for user %s", user.id)
        raise InvalidCredentials(email)
    return SessionContext.start(user, now=now)
