"""Database schema definitions for the bug tracker.

Contains the canonical SQL schema and the current schema version constant.
"""

from __future__ import annotations

CURRENT_SCHEMA_VERSION = 1

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS users (
    id            TEXT PRIMARY KEY,
    name          TEXT NOT NULL,
    email         TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role          TEXT NOT NULL DEFAULT 'reporter',
    created_at    TEXT NOT NULL,

    CHECK (role IN ('reporter', 'admin'))
);

CREATE INDEX IF NOT EXISTS idx_users_created ON users(created_at);

CREATE TABLE IF NOT EXISTS bugs (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    description TEXT DEFAULT '',
    severity    TEXT NOT NULL DEFAULT 'Low',
    status      TEXT NOT NULL DEFAULT 'Open',
    reporter_id TEXT NOT NULL REFERENCES users(id),
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,

    CHECK (severity IN ('Low', 'Medium', 'High')),
    CHECK (status IN ('Open', 'In Progress', 'Closed'))
);

CREATE INDEX IF NOT EXISTS idx_bugs_reporter_created ON bugs(reporter_id, created_at);
CREATE INDEX IF NOT EXISTS idx_bugs_created_id ON bugs(created_at, id);
CREATE INDEX IF NOT EXISTS idx_bugs_status ON bugs(status);
CREATE INDEX IF NOT EXISTS idx_bugs_severity ON bugs(severity);
"""
