"""Core database operations for the bug tracker.

Single source of truth for all SQLite operations. Both the CLI and the web
dashboard import from this module. No daemon and no ORM, just direct SQLite
with WAL mode.

Convention-based discovery: each deployment has a `.bugtrack/` directory
containing `bugtrack.db` (SQLite) and `config.json` (ID prefix, session
secret, port).
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bugtrack.db_base import (
    SEVERITY_ORDER,
    STATUS_ORDER,
    VALID_ROLES,
    VALID_SEVERITIES,
    VALID_STATUSES,
    generate_unique_id,
)
from bugtrack.db_bugs import BugsMixin
from bugtrack.db_schema import CURRENT_SCHEMA_VERSION, SCHEMA_SQL
from bugtrack.db_users import UsersMixin
from bugtrack.errors import StoreUnavailable
from bugtrack.types.core import BugDict, ProjectConfig, UserDict

logger = logging.getLogger(__name__)

__all__ = [
    "BUGTRACK_DIR_NAME",
    "CONFIG_FILENAME",
    "DB_FILENAME",
    "SEVERITY_ORDER",
    "STATUS_ORDER",
    "VALID_ROLES",
    "VALID_SEVERITIES",
    "VALID_STATUSES",
    "Bug",
    "BugTrackerDB",
    "User",
    "find_bugtrack_root",
    "read_config",
    "resolve_db_path",
    "resolve_port",
    "resolve_session_secret",
    "write_config",
]

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

BUGTRACK_DIR_NAME = ".bugtrack"
DB_FILENAME = "bugtrack.db"
CONFIG_FILENAME = "config.json"
DEFAULT_PORT = 3000


def find_bugtrack_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .bugtrack/ directory.

    Returns the .bugtrack/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / BUGTRACK_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {BUGTRACK_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(bugtrack_dir: Path) -> ProjectConfig:
    """Read .bugtrack/config.json. Returns defaults if missing or corrupt."""
    defaults = ProjectConfig(prefix="bug", version=1)
    config_path = bugtrack_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(result, dict):
        logger.warning("Ignoring %s: expected a JSON object", config_path)
        return defaults
    return ProjectConfig(**{**defaults, **result})  # type: ignore[typeddict-item]


def write_config(bugtrack_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .bugtrack/config.json."""
    config_path = bugtrack_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


def new_session_secret() -> str:
    return secrets.token_urlsafe(32)


def resolve_session_secret(config: ProjectConfig) -> str:
    """``BUGTRACK_SESSION_SECRET`` wins over config.json.

    Falls back to a per-process random secret, which invalidates every
    session on restart; ``bugtrack init`` writes a persistent one.
    """
    secret = os.getenv("BUGTRACK_SESSION_SECRET") or config.get("session_secret", "")
    if not secret:
        logger.warning("No session secret configured; using an ephemeral one")
        secret = new_session_secret()
    return secret


def resolve_port(config: ProjectConfig, override: int | None = None) -> int:
    if override is not None:
        return override
    raw = os.getenv("BUGTRACK_PORT")
    if raw:
        try:
            return int(raw)
        except ValueError:
            logger.warning("Unparseable BUGTRACK_PORT=%r, ignoring", raw)
    return int(config.get("port", DEFAULT_PORT))


def resolve_db_path(bugtrack_dir: Path) -> Path:
    """``BUGTRACK_DB`` points at an explicit database file; default lives in .bugtrack/."""
    raw = os.getenv("BUGTRACK_DB")
    return Path(raw) if raw else bugtrack_dir / DB_FILENAME


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str
    role: str = "reporter"
    created_at: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> UserDict:
        # password_hash is deliberately absent.
        return UserDict(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            created_at=self.created_at,  # type: ignore[typeddict-item]
        )


@dataclass
class Bug:
    id: str
    title: str
    reporter_id: str
    description: str = ""
    severity: str = "Low"
    status: str = "Open"
    created_at: str = ""
    updated_at: str = ""
    # Populated from the users table when loaded through the store
    reporter_name: str = ""
    reporter_email: str = ""

    def to_dict(self) -> BugDict:
        return BugDict(
            id=self.id,
            title=self.title,
            description=self.description,
            severity=self.severity,
            status=self.status,
            reporter={"id": self.reporter_id, "name": self.reporter_name, "email": self.reporter_email},
            created_at=self.created_at,  # type: ignore[typeddict-item]
            updated_at=self.updated_at,  # type: ignore[typeddict-item]
        )


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


# ---------------------------------------------------------------------------
# BugTrackerDB
# ---------------------------------------------------------------------------


class BugTrackerDB(UsersMixin, BugsMixin):
    """Direct SQLite operations. No daemon, no sync. Importable by CLI and dashboard."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        prefix: str = "bug",
        check_same_thread: bool = True,
    ) -> None:
        self.db_path = Path(db_path)
        self.prefix = prefix
        self._conn: sqlite3.Connection | None = None
        self._check_same_thread = check_same_thread

    @classmethod
    def from_project(cls, project_path: Path | None = None, *, check_same_thread: bool = True) -> BugTrackerDB:
        """Create a BugTrackerDB by discovering .bugtrack/ from project_path (or cwd)."""
        bugtrack_dir = find_bugtrack_root(project_path)
        config = read_config(bugtrack_dir)
        db = cls(
            resolve_db_path(bugtrack_dir),
            prefix=config.get("prefix", "bug"),
            check_same_thread=check_same_thread,
        )
        db.initialize()
        return db

    def __enter__(self) -> BugTrackerDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                isolation_level="DEFERRED",
                check_same_thread=self._check_same_thread,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute("PRAGMA busy_timeout=5000")
            # SQLite's lower()/LIKE only fold ASCII; title search needs Unicode.
            self._conn.create_function("casefold", 1, _casefold, deterministic=True)
        return self._conn

    def initialize(self) -> None:
        """Create tables for a fresh database and stamp the schema version.

        Raises :class:`StoreUnavailable` if the file cannot be opened or the
        schema cannot be applied.
        """
        try:
            if self.get_schema_version() == 0:
                self.conn.executescript(SCHEMA_SQL)
                self.conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
            self.conn.commit()
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to initialize database at %s", self.db_path, exc_info=True)
            self.close()
            msg = f"Cannot open database {self.db_path}: {exc}"
            raise StoreUnavailable(msg) from exc

    def get_schema_version(self) -> int:
        """Return the current schema version from PRAGMA user_version."""
        result: int = self.conn.execute("PRAGMA user_version").fetchone()[0]
        return result

    def reconnect(self, *, check_same_thread: bool) -> None:
        """Reopen the connection with a different thread-affinity setting."""
        self.close()
        self._check_same_thread = check_same_thread

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _generate_unique_id(self, table: str, infix: str = "") -> str:
        return generate_unique_id(self.conn, table, self.prefix, infix)
