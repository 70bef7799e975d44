"""Dashboard query builder.

Turns the dashboard's search box, filter dropdowns, and page number into a
single :class:`QuerySpec`, merged with the access scope decided by
:func:`bugtrack.policy.can_list_all`. The builder is pure: it never touches
the store, so the scoping guarantee can be tested without a database.

For a non-admin session the first predicate is always
``reporter_id == session.user_id``. Nothing in the request parameters can
remove or replace it.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, TypedDict

from bugtrack.db_base import VALID_SEVERITIES, VALID_STATUSES
from bugtrack.errors import ValidationError
from bugtrack.policy import can_list_all
from bugtrack.validation import check_choice, is_blank

if TYPE_CHECKING:
    from bugtrack.core import Bug
    from bugtrack.session import SessionContext

PAGE_SIZE = 10
# Keeps skip within SQLite's 64-bit integer range for absurd page numbers.
_MAX_PAGE = 1_000_000

PredicateField = Literal["reporter_id", "status", "severity", "title"]
PredicateOp = Literal["eq", "contains"]

# Stable tie-break for bugs created in the same microsecond.
ORDER_BY: tuple[tuple[str, str], ...] = (("created_at", "DESC"), ("id", "DESC"))


class DashboardFilters(TypedDict):
    """Accepted user filters, echoed back so the UI can keep its form state."""

    q: str | None
    status: str | None
    severity: str | None


@dataclass(frozen=True)
class Predicate:
    field: PredicateField
    op: PredicateOp
    value: str

    def to_sql(self) -> tuple[str, str]:
        if self.op == "contains":
            # casefold() is registered on the connection by BugTrackerDB.
            return ("instr(casefold(title), ?) > 0", self.value.casefold())
        return (f"{self.field} = ?", self.value)

    def matches(self, bug: Bug) -> bool:
        actual = getattr(bug, self.field)
        if self.op == "contains":
            return self.value.casefold() in str(actual).casefold()
        return bool(actual == self.value)


@dataclass(frozen=True)
class QuerySpec:
    """A deterministic filter + ordering + pagination for listing bugs."""

    predicates: tuple[Predicate, ...] = ()
    page: int = 1
    limit: int = PAGE_SIZE
    order_by: tuple[tuple[str, str], ...] = ORDER_BY
    filters: DashboardFilters = field(default_factory=lambda: DashboardFilters(q=None, status=None, severity=None))

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def where_sql(self) -> tuple[str, list[Any]]:
        """Return ``(" WHERE ...", params)``, or ``("", [])`` with no predicates."""
        if not self.predicates:
            return ("", [])
        clauses: list[str] = []
        params: list[Any] = []
        for predicate in self.predicates:
            clause, value = predicate.to_sql()
            clauses.append(clause)
            params.append(value)
        return (f" WHERE {' AND '.join(clauses)}", params)

    def order_sql(self, alias: str = "") -> str:
        prefix = f"{alias}." if alias else ""
        return ", ".join(f"{prefix}{column} {direction}" for column, direction in self.order_by)

    def matches(self, bug: Bug) -> bool:
        """Evaluate the predicate set against an in-memory bug."""
        return all(p.matches(bug) for p in self.predicates)


def normalize_page(raw: Any) -> int:
    """Coerce a ``page`` query value to an integer >= 1.

    Missing, non-numeric, zero, and negative values all become 1.
    """
    if raw is None or isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        page = raw
    else:
        try:
            page = int(str(raw).strip())
        except ValueError:
            return 1
    if page < 1:
        return 1
    return min(page, _MAX_PAGE)


def page_count(total: int, limit: int = PAGE_SIZE) -> int:
    return math.ceil(total / limit) if total > 0 else 0


def build_query(session: SessionContext, params: Mapping[str, Any]) -> QuerySpec:
    """Compose the dashboard listing query for *session*.

    *params* may carry ``q``, ``status``, ``severity`` and ``page``; blank
    values count as absent. An unknown ``status`` or ``severity`` raises
    :class:`~bugtrack.errors.ValidationError`.
    """
    predicates: list[Predicate] = []

    if not can_list_all(session):
        predicates.append(Predicate("reporter_id", "eq", session.user_id))

    status = params.get("status")
    if is_blank(status):
        status = None
    else:
        status, err = check_choice(status, VALID_STATUSES, "status")
        if err:
            raise ValidationError(err)
        predicates.append(Predicate("status", "eq", status))

    severity = params.get("severity")
    if is_blank(severity):
        severity = None
    else:
        severity, err = check_choice(severity, VALID_SEVERITIES, "severity")
        if err:
            raise ValidationError(err)
        predicates.append(Predicate("severity", "eq", severity))

    q = params.get("q")
    if is_blank(q) or not isinstance(q, str):
        q = None
    else:
        q = q.strip()
        predicates.append(Predicate("title", "contains", q))

    return QuerySpec(
        predicates=tuple(predicates),
        page=normalize_page(params.get("page")),
        filters=DashboardFilters(q=q, status=status, severity=severity),
    )
