import pytest
from fastapi.testclient import TestClient

from conftest import make_settings
from todo_manager.main import create_app
from todo_manager.rate_limit import limiter


@pytest.fixture()
def limited_client(tmp_path):
    limiter.reset()
    app = create_app(make_settings(tmp_path, RATE_LIMIT_ENABLED=True))
    with TestClient(app) as c:
        yield c
    limiter.reset()


def test_login_rate_limit(limited_client):
    client = limited_client
    r = client.post(
        "/api/auth/register",
        json={"name": "Rate Limited", "email": "rl@example.com", "password": "secret"},
    )
    assert r.status_code == 201

    # Hit login with wrong password 5 times (allowed)
    for _ in range(5):
        r_bad = client.post("/api/auth/login", json={"email": "rl@example.com", "password": "wrong"})
        assert r_bad.status_code == 401

    # 6th attempt within the same minute should be rate limited
    r_limit = client.post("/api/auth/login", json={"email": "rl@example.com", "password": "wrong"})
    assert r_limit.status_code == 429
    body = r_limit.json()
    assert body["success"] is False
    assert body["errors"]


def test_register_rate_limit(limited_client):
    client = limited_client
    # First three registrations should pass
    for i in range(3):
        r = client.post(
            "/api/auth/register",
            json={"name": f"User {i}", "email": f"rate{i}@example.com", "password": "secret"},
        )
        assert r.status_code == 201

    # Fourth within the same minute should hit the limiter
    r4 = client.post(
        "/api/auth/register",
        json={"name": "User 3", "email": "rate3@example.com", "password": "secret"},
    )
    assert r4.status_code == 429


def test_metrics_endpoint(tmp_path):
    app = create_app(make_settings(tmp_path, METRICS_ENABLED=True))
    with TestClient(app) as client:
        client.get("/health")
        r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_request" in r.text
