"""Shared utilities and Protocol for DB mixins."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal, Protocol


def _now_iso() -> str:
    # Fixed microsecond precision keeps lexical order equal to time order.
    return datetime.now(UTC).isoformat(timespec="microseconds")


class DBMixinProtocol(Protocol):
    """Shared attributes that DB mixins access via self.

    Mixins inherit this Protocol so mypy can type-check ``self.conn`` without
    ``type: ignore`` on every call. Actual implementations are provided by
    BugTrackerDB at composition time.
    """

    db_path: Path
    prefix: str
    _conn: sqlite3.Connection | None

    @property
    def conn(self) -> sqlite3.Connection: ...

    def _generate_unique_id(self, table: str, infix: str = "") -> str: ...


def generate_unique_id(conn: sqlite3.Connection, table: str, prefix: str, infix: str = "") -> str:
    """Generate a unique ID using O(1) EXISTS checks against the PK index.

    *table* is always a hardcoded literal at the call site (never user input).
    """
    sep = f"-{infix}-" if infix else "-"
    for _ in range(10):
        candidate = f"{prefix}{sep}{uuid.uuid4().hex[:10]}"
        if conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (candidate,)).fetchone() is None:
            return candidate
    return f"{prefix}{sep}{uuid.uuid4().hex[:16]}"


# ---------------------------------------------------------------------------
# Closed enumerations, checked at the boundary
# ---------------------------------------------------------------------------

Role = Literal["reporter", "admin"]
Severity = Literal["Low", "Medium", "High"]
Status = Literal["Open", "In Progress", "Closed"]

VALID_ROLES: frozenset[str] = frozenset({"reporter", "admin"})
VALID_SEVERITIES: frozenset[str] = frozenset({"Low", "Medium", "High"})
VALID_STATUSES: frozenset[str] = frozenset({"Open", "In Progress", "Closed"})

# Display order for forms and filters.
SEVERITY_ORDER: tuple[Severity, ...] = ("Low", "Medium", "High")
STATUS_ORDER: tuple[Status, ...] = ("Open", "In Progress", "Closed")

DEFAULT_ROLE: Role = "reporter"
DEFAULT_SEVERITY: Severity = "Low"
DEFAULT_STATUS: Status = "Open"
