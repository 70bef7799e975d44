"""Error taxonomy shared by the store, the policy, and the web layer.

Store and policy code raises these; ``dashboard_routes`` translates them
into a flash message plus a redirect to a safe page.
"""

from __future__ import annotations


class BugTrackerError(Exception):
    """Base class for every error the application raises on purpose."""


class ValidationError(BugTrackerError, ValueError):
    """A required field is missing or a value is outside its enumeration."""


class DuplicateEmail(ValidationError):
    """Registration attempted with an email that already exists."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email already in use: {email}")
        self.email = email


class NotFound(BugTrackerError, KeyError):
    """The requested entity does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return str(self.args[0])


class AccessDenied(BugTrackerError):
    """The Access Policy rejected the requested action."""

    def __init__(self, action: str, message: str | None = None) -> None:
        super().__init__(message or f"Not authorized to {action}")
        self.action = action


class Unauthenticated(BugTrackerError):
    """No session, or the session has expired."""


class UserNotFound(BugTrackerError):
    """Login attempted for an email with no account."""


class InvalidCredentials(BugTrackerError):
    """Password did not match the stored hash."""


class StoreUnavailable(BugTrackerError):
    """The database could not be opened or queried."""
