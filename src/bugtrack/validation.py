"""Shared validation functions for all entry points.

Pure functions with no FastAPI or Click dependencies.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from typing import Any, cast

from bugtrack.db_base import DEFAULT_ROLE, VALID_ROLES, Role

_MAX_NAME_LENGTH = 128
_MAX_TITLE_LENGTH = 200


def sanitize_text(value: Any, name: str, *, max_length: int) -> tuple[str, str | None]:
    """Validate and clean a single-line text field.

    Returns (cleaned, None) on success or ("", error_message) on failure.
    Strips whitespace, then checks: non-empty, max length, no control/format chars.
    """
    if not isinstance(value, str):
        return ("", f"{name} must be a string")
    # Check for control/format chars before stripping: reject "\nbad" rather
    # than silently absorbing the newline via strip().
    for ch in value:
        cat = unicodedata.category(ch)
        if cat.startswith("C"):  # Cc (control) and Cf (format)
            return ("", f"{name} must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        return ("", f"{name} must not be empty")
    if len(cleaned) > max_length:
        return ("", f"{name} must be at most {max_length} characters")
    return (cleaned, None)


def sanitize_name(value: Any) -> tuple[str, str | None]:
    return sanitize_text(value, "name", max_length=_MAX_NAME_LENGTH)


def sanitize_title(value: Any) -> tuple[str, str | None]:
    return sanitize_text(value, "title", max_length=_MAX_TITLE_LENGTH)


def check_description(value: Any) -> tuple[str, str | None]:
    """Free-form multi-line text; ``None`` means empty."""
    if value is None:
        return ("", None)
    if not isinstance(value, str):
        return ("", "description must be a string")
    return (value, None)


def check_choice(value: Any, valid: Iterable[str], name: str) -> tuple[str, str | None]:
    """Check *value* against a closed set of strings.

    Matching is exact; ``"open"`` is not a valid status.
    """
    choices = sorted(valid)
    if not isinstance(value, str) or value not in choices:
        return ("", f"Invalid {name} {value!r}. Must be one of: {', '.join(choices)}")
    return (value, None)


def coerce_role(value: Any) -> Role:
    """Constrain a self-selected role; anything unrecognised becomes ``reporter``."""
    if isinstance(value, str) and value in VALID_ROLES:
        return cast(Role, value)
    return DEFAULT_ROLE


def is_blank(value: Any) -> bool:
    """True for ``None`` and whitespace-only strings (an absent form field)."""
    return value is None or (isinstance(value, str) and not value.strip())
