"""Access policy: who may see, list, or change which bug.

Ownership-based with a single admin override. The same predicate,
:func:`can_view_or_edit`, governs viewing a bug, opening its edit form, and
submitting an update, so the three can never disagree.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from bugtrack.errors import AccessDenied

if TYPE_CHECKING:
    from bugtrack.core import Bug, BugTrackerDB
    from bugtrack.session import SessionContext

logger = logging.getLogger(__name__)

BugAction = Literal["view", "edit", "update"]
BUG_ACTIONS: frozenset[str] = frozenset({"view", "edit", "update"})


def can_list_all(session: SessionContext) -> bool:
    """Admins list every bug; everyone else only their own."""
    return session.is_admin


def can_view_or_edit(session: SessionContext, bug: Bug) -> bool:
    return session.is_admin or bug.reporter_id == session.user_id


def authorize_or_deny(session: SessionContext, bug: Bug, action: BugAction) -> None:
    """Raise :class:`AccessDenied` unless *session* may perform *action* on *bug*."""
    if action not in BUG_ACTIONS:
        msg = f"Unknown bug action: {action!r}"
        raise ValueError(msg)
    if not can_view_or_edit(session, bug):
        logger.warning("Denied %s on bug %s for user %s", action, bug.id, session.user_id)
        raise AccessDenied(action, f"Not authorized to {action} this bug")


def load_authorized_bug(db: BugTrackerDB, session: SessionContext, bug_id: str, action: BugAction) -> Bug:
    """Fetch a bug and authorize *action* on it.

    Existence is checked first: a missing bug raises ``NotFound`` for every
    caller, before any permission decision is made.
    """
    bug = db.get_bug(bug_id)
    authorize_or_deny(session, bug, action)
    return bug


def require_admin(session: SessionContext) -> None:
    if not session.is_admin:
        logger.warning("Denied admin access for user %s", session.user_id)
        raise AccessDenied("admin", "Admin access required")
