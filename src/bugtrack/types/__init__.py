"""TypedDict shapes shared across the store, web layer, and CLI."""

from bugtrack.types.core import (
    BugDict,
    DashboardPage,
    ISOTimestamp,
    ProjectConfig,
    ReporterRef,
    UserDict,
)

__all__ = [
    "BugDict",
    "DashboardPage",
    "ISOTimestamp",
    "ProjectConfig",
    "ReporterRef",
    "UserDict",
]
