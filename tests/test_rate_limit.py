"""
tests/test_rate_limit.py -- Login and register rate limiting.

The credential routes are wrapped by @limiter.limit with a limit taken from
Settings.login_rate_limit. These tests build an app with a 2/minute limit and
check that the third attempt from the same client is refused with 429, while
unlimited routes keep answering. make_client resets the shared limiter at
teardown.
"""

from __future__ import annotations

import pytest

LOGIN = {"email": "ghost@example.com", "password": "badpass1"}


@pytest.fixture
def limited_client(make_client):
    return make_client(rate_limit_enabled=True, login_rate_limit="2/minute")


def test_login_limited_after_threshold(limited_client) -> None:
    codes = [limited_client.post("/api/auth/login", json=LOGIN).status_code for _ in range(3)]
    assert codes == [401, 401, 429]


def test_rate_limited_response_uses_envelope(limited_client) -> None:
    for _ in range(2):
        limited_client.post("/api/auth/login", json=LOGIN)
    resp = limited_client.post("/api/auth/login", json=LOGIN)
    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "rate_limited"
    assert "retry-after" in resp.headers


def test_register_limited_after_threshold(limited_client) -> None:
    codes = []
    for n in range(3):
        body = {"fullname": "Sign Up", "email": f"signup{n}@example.com", "password": "secret123"}
        codes.append(limited_client.post("/api/auth/register", json=body).status_code)
    assert codes == [201, 201, 429]


def test_login_and_register_counted_separately(limited_client) -> None:
    for _ in range(2):
        limited_client.post("/api/auth/login", json=LOGIN)
    body = {"fullname": "Sign Up", "email": "separate@example.com", "password": "secret123"}
    assert limited_client.post("/api/auth/register", json=body).status_code == 201


def test_health_is_not_limited(limited_client) -> None:
    for _ in range(5):
        assert limited_client.get("/api/health").status_code == 200


def test_limits_off_when_disabled(make_client) -> None:
    client = make_client()
    codes = {client.post("/api/auth/login", json=LOGIN).status_code for _ in range(12)}
    assert codes == {401}
