"""Shared pytest fixtures for bugtrack tests."""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest
from click.testing import CliRunner

import bugtrack.auth as auth_module
from bugtrack.auth import register
from bugtrack.core import Bug, BugTrackerDB, User
from bugtrack.session import SessionContext

PASSWORDS = {
    "alice": "alice-pass",
    "bob": "bob-pass",
    "admin": "admin-pass",
}


@dataclass
class PopulatedDB:
    """A BugTrackerDB plus handles to the users and bugs seeded into it."""

    db: BugTrackerDB
    users: dict[str, User] = field(default_factory=dict)
    bugs: dict[str, Bug] = field(default_factory=dict)


def session_for(user: User, *, now: datetime | None = None) -> SessionContext:
    return SessionContext.start(user, now=now or datetime.now(UTC))


@pytest.fixture(autouse=True)
def _fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    """bcrypt's minimum cost keeps the suite fast."""
    monkeypatch.setattr(auth_module, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def db(tmp_path: Path) -> Generator[BugTrackerDB, None, None]:
    """Fresh BugTrackerDB for each test."""
    d = BugTrackerDB(tmp_path / "bugtrack.db", prefix="test")
    d.initialize()
    yield d
    d.close()


@pytest.fixture
def populated_db(db: BugTrackerDB) -> PopulatedDB:
    """BugTrackerDB with two reporters, one admin, and four bugs.

    alice: "Login button unresponsive" (High/Open), "Crash when saving draft" (Medium/In Progress)
    bob:   "Typo in footer" (Low/Closed), "Login page slow" (High/Open)
    """
    alice = register(db, name="Alice", email="alice@example.com", password=PASSWORDS["alice"])
    bob = register(db, name="Bob", email="bob@example.com", password=PASSWORDS["bob"])
    admin = register(db, name="Admin", email="admin@example.com", password=PASSWORDS["admin"], role="admin")

    bugs = {
        "alice_high": db.create_bug("Login button unresponsive", reporter_id=alice.id, severity="High"),
        "alice_wip": db.create_bug(
            "Crash when saving draft",
            reporter_id=alice.id,
            severity="Medium",
            status="In Progress",
            description="Stack trace attached",
        ),
        "bob_closed": db.create_bug("Typo in footer", reporter_id=bob.id, status="Closed"),
        "bob_high": db.create_bug("Login page slow", reporter_id=bob.id, severity="High"),
    }
    return PopulatedDB(db=db, users={"alice": alice, "bob": bob, "admin": admin}, bugs=bugs)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
