"""BugsMixin: bug CRUD and dashboard queries.

All methods access ``self.conn`` via Python's MRO when composed into
``BugTrackerDB``. Updates are a single read-modify-write with no version
check: concurrent edits to the same bug are last-write-wins per field.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from bugtrack.db_base import (
    DEFAULT_SEVERITY,
    DEFAULT_STATUS,
    VALID_SEVERITIES,
    VALID_STATUSES,
    DBMixinProtocol,
    _now_iso,
)
from bugtrack.errors import NotFound, ValidationError
from bugtrack.query import page_count
from bugtrack.types.core import DashboardPage
from bugtrack.validation import check_choice, check_description, is_blank, sanitize_title

if TYPE_CHECKING:
    from bugtrack.core import Bug
    from bugtrack.query import QuerySpec

logger = logging.getLogger(__name__)

# Bug columns plus the reporter's display fields.
_BUG_SELECT = (
    "SELECT b.id, b.title, b.description, b.severity, b.status, b.reporter_id, "
    "b.created_at, b.updated_at, u.name AS reporter_name, u.email AS reporter_email "
    "FROM bugs b JOIN users u ON u.id = b.reporter_id"
)


def _build_bug(row: sqlite3.Row) -> Bug:
    from bugtrack.core import Bug

    return Bug(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        severity=row["severity"],
        status=row["status"],
        reporter_id=row["reporter_id"],
        reporter_name=row["reporter_name"],
        reporter_email=row["reporter_email"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _choice_or_default(value: Any, valid: frozenset[str], name: str, default: str) -> str:
    if is_blank(value):
        return default
    checked, err = check_choice(value, valid, name)
    if err:
        raise ValidationError(err)
    return checked


class BugsMixin(DBMixinProtocol):
    """Bug creation, lookup, update, and paginated listing.

    Inherits ``DBMixinProtocol`` for type-safe access to shared attributes.
    """

    def create_bug(
        self,
        title: str,
        *,
        reporter_id: str,
        description: str | None = "",
        severity: str | None = None,
        status: str | None = None,
    ) -> Bug:
        cleaned_title, err = sanitize_title(title)
        if err:
            raise ValidationError(err)
        cleaned_description, err = check_description(description)
        if err:
            raise ValidationError(err)
        severity = _choice_or_default(severity, VALID_SEVERITIES, "severity", DEFAULT_SEVERITY)
        status = _choice_or_default(status, VALID_STATUSES, "status", DEFAULT_STATUS)
        if self.conn.execute("SELECT 1 FROM users WHERE id = ?", (reporter_id,)).fetchone() is None:
            raise NotFound("User", reporter_id)

        bug_id = self._generate_unique_id("bugs")
        now = _now_iso()
        self.conn.execute(
            "INSERT INTO bugs (id, title, description, severity, status, reporter_id, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (bug_id, cleaned_title, cleaned_description, severity, status, reporter_id, now, now),
        )
        self.conn.commit()
        logger.info("Bug %s reported by %s", bug_id, reporter_id)
        return self.get_bug(bug_id)

    def get_bug(self, bug_id: str) -> Bug:
        row = self.conn.execute(f"{_BUG_SELECT} WHERE b.id = ?", (bug_id,)).fetchone()
        if row is None:
            raise NotFound("Bug", bug_id)
        return _build_bug(row)

    def update_bug(
        self,
        bug_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        severity: str | None = None,
        status: str | None = None,
    ) -> Bug:
        """Apply the non-empty fields to *bug_id*.

        Empty values leave the stored field as it is. The reporter is not
        an updatable field.
        """
        current = self.get_bug(bug_id)
        updates: dict[str, str] = {}

        if not is_blank(title):
            cleaned_title, err = sanitize_title(title)
            if err:
                raise ValidationError(err)
            if cleaned_title != current.title:
                updates["title"] = cleaned_title
        if not is_blank(description):
            cleaned_description, err = check_description(description)
            if err:
                raise ValidationError(err)
            if cleaned_description != current.description:
                updates["description"] = cleaned_description
        if not is_blank(severity):
            severity = _choice_or_default(severity, VALID_SEVERITIES, "severity", current.severity)
            if severity != current.severity:
                updates["severity"] = severity
        if not is_blank(status):
            status = _choice_or_default(status, VALID_STATUSES, "status", current.status)
            if status != current.status:
                updates["status"] = status

        if not updates:
            return current

        updates["updated_at"] = _now_iso()
        # Column names come from the fixed keys above, never from input.
        assignments = ", ".join(f"{column} = ?" for column in updates)
        self.conn.execute(
            f"UPDATE bugs SET {assignments} WHERE id = ?",
            [*updates.values(), bug_id],
        )
        self.conn.commit()
        logger.info("Bug %s updated: %s", bug_id, sorted(k for k in updates if k != "updated_at"))
        return self.get_bug(bug_id)

    def count_bugs(self, spec: QuerySpec) -> int:
        where, params = spec.where_sql()
        result: int = self.conn.execute(f"SELECT COUNT(*) FROM bugs{where}", params).fetchone()[0]
        return result

    def query_bugs(self, spec: QuerySpec) -> DashboardPage:
        """Execute a dashboard :class:`QuerySpec`: one page plus totals."""
        where, params = spec.where_sql()
        # Predicates reference bare column names; qualify through a subquery
        # so the reporter join cannot make them ambiguous.
        rows = self.conn.execute(
            f"{_BUG_SELECT} WHERE b.id IN (SELECT id FROM bugs{where}) "
            f"ORDER BY {spec.order_sql('b')} LIMIT ? OFFSET ?",
            [*params, spec.limit, spec.skip],
        ).fetchall()
        total = self.count_bugs(spec)
        return DashboardPage(
            bugs=[_build_bug(r).to_dict() for r in rows],
            total=total,
            page=spec.page,
            pages=page_count(total, spec.limit),
        )
