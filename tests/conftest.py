"""
tests/conftest.py -- Shared test fixtures for Taskboard integration tests.

This module provides:
  - make_settings(): a Settings object pointing at an isolated in-memory DB
  - seed_user(): inserts a user straight into the store and returns (User, token)
  - api: module-scoped ApiContext -- TestClient plus an admin and two plain users
  - make_client: factory for one-off clients with Settings overrides

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process. Each
fixture gets a fresh name so test modules never see each other's rows.

Every app is built with create_app(settings), so no environment variables
and no cached get_settings() singleton are involved.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Generator
from typing import NamedTuple

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api import limiter as rate_limits
from api.main import create_app
from auth.models import Role, User
from auth.tokens import hash_password
from core.config import Settings

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
TEST_PASSWORD = "testpass123"


def make_settings(**overrides) -> Settings:
    """Return test Settings backed by a uniquely named shared-memory database."""
    name = f"taskboard_test_{uuid.uuid4().hex}"
    values = {
        "debug": True,
        "secret_key": TEST_SECRET,
        "database_url": f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true",
        "allowed_hosts": ["testserver"],
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


def seed_user(app: FastAPI, fullname: str, email: str, role: Role = Role.user) -> tuple[User, str]:
    """Create a user directly in the app's store and issue a token for it.

    Bypasses POST /api/auth/register so fixtures do not depend on the route
    under test. Must be called after the TestClient has run the lifespan.
    """
    user = User(fullname=fullname, email=email, role=role, hashed_password=hash_password(TEST_PASSWORD))
    user_id = app.state.user_store.create_user(user)
    return app.state.user_store.get_by_id(user_id), app.state.tokens.issue(user_id)


class ApiContext(NamedTuple):
    client: TestClient
    app: FastAPI
    admin: User
    admin_token: str
    user: User
    user_token: str
    other: User
    other_token: str

    @property
    def admin_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.admin_token}"}

    @property
    def user_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.user_token}"}

    @property
    def other_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.other_token}"}


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses a real app from create_app(); entering the client runs
    the lifespan, which builds the stores and services on app.state. Three
    accounts are seeded: one admin and two plain users, all with password
    TEST_PASSWORD.
    """
    app = create_app(make_settings())
    with TestClient(app, raise_server_exceptions=True) as client:
        admin, admin_token = seed_user(app, "Test Admin", "admin@example.com", Role.admin)
        user, user_token = seed_user(app, "Test User", "user@example.com")
        other, other_token = seed_user(app, "Other User", "other@example.com")
        yield ApiContext(client, app, admin, admin_token, user, user_token, other, other_token)


@pytest.fixture
def make_client() -> Generator[Callable[..., TestClient], None, None]:
    """Yield a factory for one-off clients with Settings overrides.

    For tests that need a differently configured app (admin registration
    off, rate limiting on). Every client it hands out is closed, and its
    lifespan shut down, at teardown. The process-wide limiter is reset
    afterwards so a rate-limited app cannot leak counters or its enabled
    flag into later tests.
    """
    clients: list[TestClient] = []

    def factory(**overrides) -> TestClient:
        client = TestClient(create_app(make_settings(**overrides)), raise_server_exceptions=True)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
    # Back to the state every make_settings() app expects: counters empty, limiting off.
    rate_limits.reset(enabled=False)
