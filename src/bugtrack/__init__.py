"""Bugtrack: a session-authenticated bug tracker with ownership-based access control."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bugtrack")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from bugtrack.core import Bug, BugTrackerDB, User

__all__ = ["Bug", "BugTrackerDB", "User", "__version__"]
