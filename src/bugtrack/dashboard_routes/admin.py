"""Admin-only route handlers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from starlette.requests import Request

from bugtrack.core import BugTrackerDB
from bugtrack.dashboard_routes.common import current_session, flash_redirect, view_model
from bugtrack.errors import AccessDenied
from bugtrack.policy import require_admin


def create_router() -> APIRouter:
    from bugtrack.dashboard import _get_db

    router = APIRouter()

    @router.get("/admin/users")
    async def list_users(request: Request, db: BugTrackerDB = Depends(_get_db)) -> Response:
        # Anonymous and non-admin callers get the same answer.
        session = current_session(request)
        try:
            if session is None:
                raise AccessDenied("admin", "Admin access required")
            require_admin(session)
        except AccessDenied as exc:
            return flash_redirect(request, "error", str(exc), "/")
        return view_model(request, session, users=[u.to_dict() for u in db.list_users()])

    return router
