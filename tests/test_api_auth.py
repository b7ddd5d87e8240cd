"""
tests/test_api_auth.py -- Integration tests for /api/auth routes.

These tests exercise the full stack: FastAPI routing -> request model
validation -> UserStore -> TokenService -> response serialization.

Coverage:
  - Register: 201 with token and cookie, duplicate email 400, field validation 400
  - Login: 201 with token, wrong password and unknown email both 401
  - Bearer parsing: missing, malformed scheme, bad token, orphaned user -> 401
  - /me and /users (admin only)

Fixtures used (from conftest.py):
  - api: ApiContext with admin@example.com, user@example.com, other@example.com,
    all with password "testpass123".
"""

from __future__ import annotations

from fastapi.testclient import TestClient


class TestRegister:
    def test_register_returns_token_and_cookie(self, api) -> None:
        resp = api.client.post(
            "/api/auth/register",
            json={"fullname": "New Person", "email": "new@example.com", "password": "secret123"},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["message"] == "User registered successfully."
        assert data["token"]
        assert "token=" in resp.headers["set-cookie"]
        assert "httponly" in resp.headers["set-cookie"].lower()
        assert resp.headers["cache-control"] == "no-store"

    def test_registered_token_works(self, api) -> None:
        resp = api.client.post(
            "/api/auth/register",
            json={"fullname": "Token Person", "email": "token@example.com", "password": "secret123"},
        )
        token = resp.json()["token"]
        me = api.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "token@example.com"
        assert me.json()["role"] == "user"

    def test_duplicate_email(self, api) -> None:
        resp = api.client.post(
            "/api/auth/register",
            json={"fullname": "Copy Cat", "email": "user@example.com", "password": "secret123"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "User already exists."

    def test_validation_lists_every_field(self, api) -> None:
        resp = api.client.post(
            "/api/auth/register",
            json={"fullname": "ab", "email": "not-an-email", "password": "123"},
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "validation_error"
        for field in ("fullname", "email", "password"):
            assert field in error["message"]

    def test_register_admin_allowed_by_default(self, api) -> None:
        resp = api.client.post(
            "/api/auth/register",
            json={"fullname": "Boss Person", "email": "boss@example.com", "password": "secret123", "role": "admin"},
        )
        assert resp.status_code == 201

    def test_register_admin_refused_when_disabled(self, make_client) -> None:
        client = make_client(allow_admin_registration=False)
        resp = client.post(
            "/api/auth/register",
            json={"fullname": "Boss Person", "email": "boss@example.com", "password": "secret123", "role": "admin"},
        )
        assert resp.status_code == 403

    def test_unknown_role_rejected(self, api) -> None:
        resp = api.client.post(
            "/api/auth/register",
            json={"fullname": "Odd Person", "email": "odd@example.com", "password": "secret123", "role": "root"},
        )
        assert resp.status_code == 400


class TestLogin:
    def test_login_valid(self, api) -> None:
        resp = api.client.post("/api/auth/login", json={"email": "user@example.com", "password": "testpass123"})
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["message"] == "User logged in successfully."
        me = api.client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["id"] == api.user.id

    def test_wrong_password_and_unknown_email_match(self, api) -> None:
        wrong = api.client.post("/api/auth/login", json={"email": "user@example.com", "password": "badpass1"})
        ghost = api.client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "badpass1"})
        assert wrong.status_code == ghost.status_code == 401
        assert wrong.json() == ghost.json()
        assert wrong.headers["www-authenticate"] == "Bearer"

    def test_missing_fields(self, api) -> None:
        resp = api.client.post("/api/auth/login", json={})
        assert resp.status_code == 400

    def test_logout_clears_cookie(self, api) -> None:
        resp = api.client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert "token=" in resp.headers["set-cookie"]


class TestBearerParsing:
    def test_no_header(self, api) -> None:
        resp = api.client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "You are not logged in."

    def test_wrong_scheme(self, api) -> None:
        resp = api.client.get("/api/auth/me", headers={"Authorization": f"Token {api.user_token}"})
        assert resp.status_code == 401

    def test_scheme_is_case_insensitive(self, api) -> None:
        resp = api.client.get("/api/auth/me", headers={"Authorization": f"bearer {api.user_token}"})
        assert resp.status_code == 200

    def test_bad_token(self, api) -> None:
        resp = api.client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_token_for_deleted_user(self, api) -> None:
        orphan = api.app.state.tokens.issue(987654)
        resp = api.client.get("/api/auth/me", headers={"Authorization": f"Bearer {orphan}"})
        assert resp.status_code == 401

    def test_cookie_alone_does_not_authenticate(self, api) -> None:
        client = TestClient(api.app, cookies={"token": api.user_token})
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401


class TestUsers:
    def test_me_has_no_password(self, api) -> None:
        data = api.client.get("/api/auth/me", headers=api.user_headers).json()
        assert "hashedPassword" not in data
        assert "password" not in data
        assert data["fullname"] == "Test User"

    def test_admin_lists_users(self, api) -> None:
        resp = api.client.get("/api/auth/users", headers=api.admin_headers)
        assert resp.status_code == 200
        emails = [u["email"] for u in resp.json()]
        assert {"admin@example.com", "user@example.com", "other@example.com"} <= set(emails)

    def test_user_cannot_list_users(self, api) -> None:
        resp = api.client.get("/api/auth/users", headers=api.user_headers)
        assert resp.status_code == 403
