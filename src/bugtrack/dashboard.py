"""Web dashboard for bugtrack: session-authenticated bug reporting and triage.

A module-level ``_db`` is set at startup and injected via
``Depends(_get_db)``. Sessions live in a signed cookie
(Starlette ``SessionMiddleware``) for at most 24 hours.

Usage:
    bugtrack dashboard                    # Opens browser at localhost:3000
    bugtrack dashboard --port 9000        # Custom port
    bugtrack dashboard --no-browser       # Skip auto-open
"""

from __future__ import annotations

import logging
import sqlite3
import webbrowser
from pathlib import Path
from time import perf_counter
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from bugtrack.core import (
    BugTrackerDB,
    find_bugtrack_root,
    read_config,
    resolve_db_path,
    resolve_port,
    resolve_session_secret,
)
from bugtrack.errors import StoreUnavailable, Unauthenticated
from bugtrack.session import SESSION_TTL

STATIC_DIR = Path(__file__).parent / "static"
SESSION_COOKIE = "bugtrack_session"

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_db: BugTrackerDB | None = None


def _get_db() -> BugTrackerDB:
    """Return the active database connection."""
    if _db is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return _db


def _session_user_id(request: Request) -> str | None:
    auth = request.scope.get("session", {}).get("auth")
    return auth.get("user_id") if isinstance(auth, dict) else None


def create_app(*, session_secret: str, https_only: bool = False) -> FastAPI:
    """Create the FastAPI application with all dashboard endpoints."""
    from starlette.middleware.sessions import SessionMiddleware
    from starlette.staticfiles import StaticFiles

    from bugtrack.dashboard_routes import admin, auth, bugs
    from bugtrack.dashboard_routes.common import flash_redirect

    app = FastAPI(title="Bugtrack", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Response:
        start = perf_counter()
        user_id = _session_user_id(request)
        response: Response = await call_next(request)
        logger.info(
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "route": f"{request.method} {request.url.path}",
                "user_id": user_id,
                "status_code": response.status_code,
                "duration_ms": round((perf_counter() - start) * 1000, 2),
            },
        )
        return response

    # Added last so it wraps the logging middleware and the session is
    # decoded before anything reads it.
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=SESSION_COOKIE,
        max_age=int(SESSION_TTL.total_seconds()),
        same_site="lax",
        https_only=https_only,
    )

    async def _unauthenticated(request: Request, exc: Exception) -> Response:
        return flash_redirect(request, "error", "You must be logged in", "/login")

    async def _store_failure(request: Request, exc: Exception) -> Response:
        logger.error(
            "Store failure on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
            extra={"error": type(exc).__name__},
        )
        return flash_redirect(request, "error", "Something went wrong, please try again", "/")

    app.add_exception_handler(Unauthenticated, _unauthenticated)
    app.add_exception_handler(StoreUnavailable, _store_failure)
    app.add_exception_handler(sqlite3.Error, _store_failure)

    app.include_router(auth.create_router())
    app.include_router(bugs.create_router())
    app.include_router(admin.create_router())

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        html = (STATIC_DIR / "index.html").read_text()
        return HTMLResponse(html)

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    return app


def open_store(bugtrack_dir: Path) -> BugTrackerDB:
    """Open and initialize the store, or raise :class:`StoreUnavailable`."""
    config = read_config(bugtrack_dir)
    db = BugTrackerDB(
        resolve_db_path(bugtrack_dir),
        prefix=config.get("prefix", "bug"),
        check_same_thread=False,
    )
    db.initialize()
    return db


def main(port: int | None = None, *, no_browser: bool = False) -> None:
    """Start the dashboard server.

    The store is opened before the server binds; if that fails,
    :class:`StoreUnavailable` propagates and nothing is served.
    """
    import threading

    import uvicorn

    from bugtrack.logging import setup_logging

    global _db

    bugtrack_dir = find_bugtrack_root()
    setup_logging(bugtrack_dir)
    config = read_config(bugtrack_dir)
    _db = open_store(bugtrack_dir)
    port = resolve_port(config, port)

    app = create_app(session_secret=resolve_session_secret(config))

    if not no_browser:
        threading.Timer(0.5, lambda: webbrowser.open(f"http://localhost:{port}")).start()

    logger.info("Dashboard starting on port %d", port)
    print(f"Bugtrack Dashboard: http://localhost:{port}")
    try:
        uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
    finally:
        _db.close()
        _db = None
