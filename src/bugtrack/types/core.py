"""Foundational TypedDicts for dataclass to_dict() returns."""

from __future__ import annotations

from typing import NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .bugtrack/config.json."""

    prefix: str
    version: int
    session_secret: str
    port: int


class UserDict(TypedDict):
    id: str
    name: str
    email: str
    role: str
    created_at: ISOTimestamp


class ReporterRef(TypedDict):
    id: str
    name: str
    email: str


class BugDict(TypedDict):
    id: str
    title: str
    description: str
    severity: str
    status: str
    reporter: ReporterRef
    created_at: ISOTimestamp
    updated_at: ISOTimestamp


class DashboardPage(TypedDict):
    """Envelope returned by ``BugTrackerDB.query_bugs``."""

    bugs: list[BugDict]
    total: int
    page: int
    pages: int
