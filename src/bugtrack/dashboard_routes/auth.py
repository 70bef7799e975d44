"""Registration, login, and logout route handlers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from starlette.requests import Request

from bugtrack.auth import login, register
from bugtrack.core import VALID_ROLES, BugTrackerDB
from bugtrack.dashboard_routes.common import (
    current_session,
    flash_redirect,
    parse_body,
    redirect,
    require_session,
    start_session,
    view_model,
)
from bugtrack.errors import DuplicateEmail, InvalidCredentials, UserNotFound, ValidationError
from bugtrack.session import SessionContext

logger = logging.getLogger(__name__)


def create_router() -> APIRouter:
    """Build the APIRouter for account endpoints.

    NOTE: All handlers are intentionally async despite doing synchronous
    SQLite I/O. This serializes DB access on the event loop thread,
    avoiding concurrent multi-thread access to the shared DB connection.
    """
    from bugtrack.dashboard import _get_db

    router = APIRouter()

    @router.get("/register")
    async def register_form(request: Request) -> Response:
        return view_model(request, current_session(request), roles=sorted(VALID_ROLES))

    @router.post("/register")
    async def register_submit(request: Request, db: BugTrackerDB = Depends(_get_db)) -> Response:
        try:
            body = await parse_body(request)
            register(
                db,
                name=body.get("name"),
                email=body.get("email"),
                password=body.get("password"),
                role=body.get("role"),
            )
        except DuplicateEmail:
            return flash_redirect(request, "error", "Email already in use", "/register")
        except ValidationError as exc:
            return flash_redirect(request, "error", str(exc), "/register")
        return flash_redirect(request, "success", "Registered. Please login.", "/login")

    @router.get("/login")
    async def login_form(request: Request) -> Response:
        return view_model(request, current_session(request))

    @router.post("/login")
    async def login_submit(request: Request, db: BugTrackerDB = Depends(_get_db)) -> Response:
        try:
            body = await parse_body(request)
            ctx = login(db, email=body.get("email"), password=body.get("password"))
        except UserNotFound:
            # Unknown accounts are sent to sign up rather than back to login.
            return flash_redirect(request, "error", "Please Register First!", "/register")
        except (InvalidCredentials, ValidationError):
            return flash_redirect(request, "error", "Invalid credentials", "/login")
        start_session(request, ctx)
        logger.info("User %s logged in", ctx.user_id)
        return flash_redirect(request, "success", "Logged in", "/dashboard")

    @router.post("/logout")
    async def logout(request: Request, session: SessionContext = Depends(require_session)) -> Response:
        request.session.clear()
        logger.info("User %s logged out", session.user_id)
        return redirect("/")

    return router
