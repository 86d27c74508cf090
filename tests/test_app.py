import time

import anyio
import pytest

from auradesk.db import dispose_engine
from auradesk.db_init import init_db
from auradesk.routes import auth as auth_routes
from auradesk.schemas import RegisterPayload


def preflight(client, origin):
    return client.options(
        "/api/tasks",
        headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
    )


def test_cors_allows_configured_origin(client):
    response = preflight(client, "http://localhost:5173")
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_cors_matches_origins_by_prefix(client):
    response = preflight(client, "http://localhost:5173.evil.com")
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173.evil.com"


def test_cors_rejects_unknown_origin(client):
    response = preflight(client, "http://evil.com")
    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


@pytest.mark.anyio
async def test_password_hashing_keeps_event_loop_responsive(app_env, monkeypatch):
    real_hash = auth_routes.hash_password

    def slow_hash(password):
        time.sleep(0.3)
        return real_hash(password)

    monkeypatch.setattr(auth_routes, "hash_password", slow_hash)
    gaps = []
    done = anyio.Event()

    async def ticker():
        last = time.perf_counter()
        while not done.is_set():
            await anyio.sleep(0.01)
            now = time.perf_counter()
            gaps.append(now - last)
            last = now

    await init_db()
    try:
        async with anyio.create_task_group() as group:
            group.start_soon(ticker)
            result = await auth_routes.register(
                RegisterPayload(name="Ada", email="ada@example.com", password="secret123")
            )
            done.set()
    finally:
        await dispose_engine()

    assert result["user"]["email"] == "ada@example.com"
    assert len(gaps) > 5
    assert max(gaps) < 0.2
