from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auradesk import db, settings


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'auradesk-test.db'}")
    monkeypatch.setenv("UPLOADS_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("JWT_SECRET", "auradesk-test-secret-0123456789abcdef")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("APP_TIMEZONE", "UTC")
    settings.reset_settings()
    db._engine = None
    db._session_factory = None
    yield tmp_path
    settings.reset_settings()
    db._engine = None
    db._session_factory = None


@pytest.fixture
def client(app_env):
    from auradesk.main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "Ada@Example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def anyio_backend():
    return "asyncio"
