"""Shared helpers for dashboard route modules.

Flash messages, redirects, session resolution, and body parsing. Every
user-input or authorization failure ends in :func:`flash_redirect`: a
one-shot message stored in the session plus a 303 to a safe page.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from fastapi.responses import JSONResponse, RedirectResponse
from starlette.requests import Request

from bugtrack.errors import Unauthenticated, ValidationError
from bugtrack.session import SessionContext

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SESSION_AUTH_KEY = "auth"
_FLASH_KEY = "_flash"

FlashCategory = Literal["success", "error"]

# ---------------------------------------------------------------------------
# Flash messages
# ---------------------------------------------------------------------------


def flash(request: Request, category: FlashCategory, message: str) -> None:
    pending: dict[str, list[str]] = request.session.setdefault(_FLASH_KEY, {})
    pending.setdefault(category, []).append(message)


def pop_flashes(request: Request) -> dict[str, list[str]]:
    """Return and clear the pending messages, always with both categories."""
    pending = request.session.pop(_FLASH_KEY, None) or {}
    return {"success": list(pending.get("success", [])), "error": list(pending.get("error", []))}


def redirect(url: str) -> RedirectResponse:
    # 303 so a POST/PUT is followed by a GET.
    return RedirectResponse(url, status_code=303)


def flash_redirect(request: Request, category: FlashCategory, message: str, url: str) -> RedirectResponse:
    if category == "error":
        logger.warning("Redirecting %s %s -> %s: %s", request.method, request.url.path, url, message)
    flash(request, category, message)
    return redirect(url)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def current_session(request: Request) -> SessionContext | None:
    """The live session for this request, or ``None``.

    An expired or malformed session is wiped so it cannot be replayed.
    """
    ctx = SessionContext.from_cookie(request.session.get(SESSION_AUTH_KEY))
    if ctx is None:
        if SESSION_AUTH_KEY in request.session:
            request.session.pop(SESSION_AUTH_KEY)
        return None
    if ctx.is_expired():
        logger.info("Session for user %s expired", ctx.user_id)
        request.session.pop(SESSION_AUTH_KEY)
        return None
    return ctx


def require_session(request: Request) -> SessionContext:
    """FastAPI dependency: the caller's session, or :class:`Unauthenticated`."""
    ctx = current_session(request)
    if ctx is None:
        raise Unauthenticated("You must be logged in")
    return ctx


def start_session(request: Request, ctx: SessionContext) -> None:
    """Replace whatever was in the session with a fresh login."""
    request.session.clear()
    request.session[SESSION_AUTH_KEY] = ctx.to_cookie()


# ---------------------------------------------------------------------------
# Request / response helpers
# ---------------------------------------------------------------------------


async def parse_body(request: Request) -> dict[str, Any]:
    """Read a form or JSON object body into a plain dict.

    Raises :class:`ValidationError` for malformed JSON. File uploads in a
    multipart form are ignored.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, ValueError, UnicodeDecodeError) as exc:
            msg = "Invalid JSON body"
            raise ValidationError(msg) from exc
        if not isinstance(body, dict):
            msg = "Request body must be a JSON object"
            raise ValidationError(msg)
        return body
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def view_model(request: Request, session: SessionContext | None, **data: Any) -> JSONResponse:
    """JSON payload for a page: its data plus the user and pending flashes."""
    return JSONResponse(
        {
            "current_user": session.current_user() if session is not None else None,
            "flash": pop_flashes(request),
            **data,
        }
    )
