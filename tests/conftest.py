# tests/conftest.py
# PURPOSE: build the app through create_app() against a temp SQLite file,
# and provide helpers that register users and return auth headers.

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from todo_manager.config import Settings
from todo_manager.main import create_app
from todo_manager.rate_limit import limiter


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "JWT_SECRET": "test-secret",
        "RATE_LIMIT_ENABLED": False,
        "METRICS_ENABLED": False,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture()
def client(settings):
    # Fresh limiter counters and a fresh database per test
    limiter.reset()
    app = create_app(settings)
    # Context manager runs the lifespan: schema created, engine disposed after
    with TestClient(app) as c:
        yield c


def register(client, name: str = "Alice Doe", email: str = "alice@example.com", password: str = "secret-123") -> Dict:
    """Helper: register a user and return the response JSON."""
    r = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert r.status_code == 201, r.text
    return r.json()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(client) -> Dict[str, str]:
    return bearer(register(client)["data"]["token"])


@pytest.fixture()
def other_headers(client) -> Dict[str, str]:
    body = register(client, name="Bob Roe", email="bob@example.com")
    return bearer(body["data"]["token"])


def create_task(client, headers, title: str, **fields) -> Dict:
    """Helper: create a task and return the task object from the envelope."""
    r = client.post("/api/tasks", json={"title": title, **fields}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]
