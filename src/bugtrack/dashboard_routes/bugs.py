"""Bug reporting, dashboard listing, viewing, and editing route handlers.

Every per-bug handler goes through :func:`bugtrack.policy.load_authorized_bug`,
so view, edit form, and update share one permission decision.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.requests import Request

from bugtrack.core import SEVERITY_ORDER, STATUS_ORDER, BugTrackerDB
from bugtrack.dashboard_routes.common import (
    flash_redirect,
    parse_body,
    require_session,
    view_model,
)
from bugtrack.errors import AccessDenied, NotFound, ValidationError
from bugtrack.policy import load_authorized_bug
from bugtrack.query import build_query
from bugtrack.session import SessionContext

logger = logging.getLogger(__name__)


def create_router() -> APIRouter:
    """Build the APIRouter for bug endpoints.

    NOTE: All handlers are intentionally async despite doing synchronous
    SQLite I/O. This serializes DB access on the event loop thread,
    avoiding concurrent multi-thread access to the shared DB connection.
    """
    from bugtrack.dashboard import _get_db

    router = APIRouter()

    async def _update(bug_id: str, body: dict[str, Any], request: Request, db: BugTrackerDB, session: SessionContext) -> Response:
        try:
            load_authorized_bug(db, session, bug_id, "update")
            db.update_bug(
                bug_id,
                title=body.get("title"),
                description=body.get("description"),
                severity=body.get("severity"),
                status=body.get("status"),
            )
        except NotFound:
            return flash_redirect(request, "error", "Bug not found", "/dashboard")
        except AccessDenied as exc:
            return flash_redirect(request, "error", str(exc), "/dashboard")
        except ValidationError as exc:
            logger.warning("Rejected update to bug %s: %s", bug_id, exc)
            return flash_redirect(request, "error", "Update failed", "/dashboard")
        return flash_redirect(request, "success", "Bug updated", f"/bugs/{bug_id}")

    @router.get("/bugs/new")
    async def new_bug_form(request: Request, session: SessionContext = Depends(require_session)) -> Response:
        return view_model(request, session, severities=list(SEVERITY_ORDER))

    @router.post("/bugs")
    async def create_bug(
        request: Request,
        db: BugTrackerDB = Depends(_get_db),
        session: SessionContext = Depends(require_session),
    ) -> Response:
        try:
            body = await parse_body(request)
            # The reporter is always the caller; a "reporter" field in the body is ignored.
            db.create_bug(
                body.get("title", ""),
                reporter_id=session.user_id,
                description=body.get("description"),
                severity=body.get("severity"),
            )
        except (ValidationError, NotFound) as exc:
            logger.warning("Rejected bug report from %s: %s", session.user_id, exc)
            return flash_redirect(request, "error", "Failed to report bug", "/bugs/new")
        return flash_redirect(request, "success", "Bug reported", "/dashboard")

    @router.get("/dashboard")
    async def dashboard(
        request: Request,
        db: BugTrackerDB = Depends(_get_db),
        session: SessionContext = Depends(require_session),
    ) -> Response:
        try:
            spec = build_query(session, request.query_params)
        except ValidationError as exc:
            # Retry without filters; /dashboard alone always builds.
            return flash_redirect(request, "error", str(exc), "/dashboard")
        try:
            result = db.query_bugs(spec)
        except sqlite3.Error:
            logger.error("Dashboard query failed for %s", session.user_id, exc_info=True)
            return flash_redirect(request, "error", "Could not load dashboard", "/")
        return view_model(
            request,
            session,
            **result,
            filters=spec.filters,
            severities=list(SEVERITY_ORDER),
            statuses=list(STATUS_ORDER),
        )

    @router.get("/bugs/{bug_id}")
    async def show_bug(
        bug_id: str,
        request: Request,
        db: BugTrackerDB = Depends(_get_db),
        session: SessionContext = Depends(require_session),
    ) -> Response:
        try:
            bug = load_authorized_bug(db, session, bug_id, "view")
        except NotFound:
            return flash_redirect(request, "error", "Bug not found", "/dashboard")
        except AccessDenied as exc:
            return flash_redirect(request, "error", str(exc), "/dashboard")
        return view_model(request, session, bug=bug.to_dict())

    @router.get("/bugs/{bug_id}/edit")
    async def edit_bug_form(
        bug_id: str,
        request: Request,
        db: BugTrackerDB = Depends(_get_db),
        session: SessionContext = Depends(require_session),
    ) -> Response:
        try:
            bug = load_authorized_bug(db, session, bug_id, "edit")
        except NotFound:
            return flash_redirect(request, "error", "Bug not found", "/dashboard")
        except AccessDenied as exc:
            return flash_redirect(request, "error", str(exc), "/dashboard")
        return view_model(
            request,
            session,
            bug=bug.to_dict(),
            user_role=session.role,
            severities=list(SEVERITY_ORDER),
            statuses=list(STATUS_ORDER),
        )

    @router.put("/bugs/{bug_id}")
    async def update_bug(
        bug_id: str,
        request: Request,
        db: BugTrackerDB = Depends(_get_db),
        session: SessionContext = Depends(require_session),
    ) -> Response:
        try:
            body = await parse_body(request)
        except ValidationError:
            return flash_redirect(request, "error", "Update failed", "/dashboard")
        return await _update(bug_id, body, request, db, session)

    @router.post("/bugs/{bug_id}")
    async def update_bug_via_form(
        bug_id: str,
        request: Request,
        db: BugTrackerDB = Depends(_get_db),
        session: SessionContext = Depends(require_session),
    ) -> Response:
        """HTML forms cannot send PUT; accept POST with ``_method=PUT``."""
        try:
            body = await parse_body(request)
        except ValidationError:
            return flash_redirect(request, "error", "Update failed", "/dashboard")
        if str(body.pop("_method", "")).upper() != "PUT":
            raise HTTPException(status_code=405, detail="Method Not Allowed")
        return await _update(bug_id, body, request, db, session)

    return router
