"""Fixtures for HTTP dashboard tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient, Response

import bugtrack.dashboard as dash_module
from bugtrack.dashboard import create_app
from tests.conftest import PASSWORDS, PopulatedDB


@pytest.fixture
def dashboard_db(populated_db: PopulatedDB) -> PopulatedDB:
    """Use the populated_db fixture for dashboard tests.

    Reconnects the underlying DB with check_same_thread=False so FastAPI's
    threadpool dependencies may touch it. Returns the full PopulatedDB
    wrapper so tests can access ``.db``, ``.users`` and ``.bugs``.
    """
    populated_db.db.reconnect(check_same_thread=False)
    return populated_db


@pytest.fixture
async def client(dashboard_db: PopulatedDB) -> AsyncIterator[AsyncClient]:
    """Anonymous test client; cookies persist across requests."""
    dash_module._db = dashboard_db.db
    app = create_app(session_secret="test-secret")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._db = None


async def login_as(client: AsyncClient, name: str) -> Response:
    """Log in as one of the seeded users (alice, bob, admin)."""
    resp = await client.post(
        "/login",
        data={"email": f"{name}@example.com", "password": PASSWORDS[name]},
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"
    return resp


async def read_flash(client: AsyncClient) -> dict[str, list[str]]:
    """Consume pending flash messages via a page that needs no session."""
    resp = await client.get("/login")
    assert resp.status_code == 200
    flash: dict[str, list[str]] = resp.json()["flash"]
    return flash


@pytest.fixture
async def alice_client(client: AsyncClient) -> AsyncClient:
    await login_as(client, "alice")
    await read_flash(client)
    return client


@pytest.fixture
async def admin_client(client: AsyncClient) -> AsyncClient:
    await login_as(client, "admin")
    await read_flash(client)
    return client
