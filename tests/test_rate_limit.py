import pytest

from conftest import PASSWORD
from spotlight.api import create_app
from spotlight.api.extensions import policy_limit
from spotlight.models import storage

POLICIES = {
    "general": {"window_seconds": 60, "max_requests": 100},
    "login": {"window_seconds": 900, "max_requests": 2},
    "registration": {"window_seconds": 3600, "max_requests": 1},
}


@pytest.fixture
def limited_client():
    app = create_app("testing", overrides={"RATELIMIT_ENABLED": True, "RATE_LIMIT_POLICIES": POLICIES})
    yield app.test_client()
    storage.drop_all()


def attempt_login(client, **kwargs):
    return client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD}, **kwargs)


def test_policy_limit_string():
    assert policy_limit("login", {"RATE_LIMIT_POLICIES": POLICIES}) == "2 per 900 seconds"


def test_login_is_throttled_per_client_ip(limited_client):
    body = {"name": "Alice", "email": "alice@example.com", "password": PASSWORD}
    assert limited_client.post("/api/auth/register", json=body).status_code == 201

    assert attempt_login(limited_client).status_code == 200
    assert attempt_login(limited_client).status_code == 200

    resp = attempt_login(limited_client)
    assert resp.status_code == 429
    assert resp.get_json()["code"] == "RATE_LIMITED"

    # another client address has its own bucket
    resp = attempt_login(limited_client, headers={"X-Forwarded-For": "198.51.100.23"})
    assert resp.status_code == 200


def test_failed_logins_count_too(limited_client):
    for _ in range(2):
        assert attempt_login(limited_client).status_code == 401
    assert attempt_login(limited_client).status_code == 429


def test_registration_has_its_own_budget(limited_client):
    first = {"name": "Alice", "email": "alice@example.com", "password": PASSWORD}
    second = {"name": "Bob", "email": "bob@example.com", "password": PASSWORD}
    assert limited_client.post("/api/auth/register", json=first).status_code == 201
    assert limited_client.post("/api/auth/register", json=second).status_code == 429
    assert attempt_login(limited_client).status_code == 200


def test_limits_are_off_in_testing(client):
    for _ in range(8):
        assert attempt_login(client).status_code == 401
