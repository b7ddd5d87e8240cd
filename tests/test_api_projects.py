"""
tests/test_api_projects.py -- Integration tests for /api/projects routes.

Coverage:
  - Create: admin 201, user 403, unauthenticated 401, validation 400
  - List: every authenticated user sees every project
  - Project task listing: newest first, assignedTo/priority/status filters,
    empty filter values ignored, invalid filter values 400, unknown project 404
"""

from __future__ import annotations

import pytest


def _create_project(api, title: str = "Launch") -> int:
    resp = api.client.post(
        "/api/projects",
        json={"title": title, "description": "Q3 launch"},
        headers=api.admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["project"]["id"]


def _create_task(api, project_id: int, title: str, assignee_id: int, priority: str = "Medium") -> dict:
    resp = api.client.post(
        "/api/task",
        json={
            "title": title,
            "description": "details",
            "assignedTo": assignee_id,
            "projectId": project_id,
            "priority": priority,
        },
        headers=api.admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


class TestCreateProject:
    def test_admin_creates(self, api) -> None:
        resp = api.client.post(
            "/api/projects",
            json={"title": "Launch", "description": "Q3 launch"},
            headers=api.admin_headers,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["message"] == "Project created successfully."
        assert data["project"]["title"] == "Launch"
        assert data["project"]["createdBy"] == api.admin.id

    def test_user_forbidden(self, api) -> None:
        resp = api.client.post(
            "/api/projects",
            json={"title": "Mine", "description": "nope"},
            headers=api.user_headers,
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "User is not authorized."

    def test_unauthenticated(self, api) -> None:
        resp = api.client.post("/api/projects", json={"title": "Mine", "description": "nope"})
        assert resp.status_code == 401

    def test_missing_description(self, api) -> None:
        resp = api.client.post("/api/projects", json={"title": "Launch"}, headers=api.admin_headers)
        assert resp.status_code == 400
        assert "description" in resp.json()["error"]["message"]


class TestListProjects:
    def test_user_sees_every_project(self, api) -> None:
        project_id = _create_project(api, "Visible")
        resp = api.client.get("/api/projects", headers=api.other_headers)
        assert resp.status_code == 200
        assert project_id in [p["id"] for p in resp.json()]

    def test_requires_auth(self, api) -> None:
        assert api.client.get("/api/projects").status_code == 401


@pytest.fixture(scope="module")
def seeded(api) -> dict:
    """One project with three tasks: two High, one Low and Done; two assigned to api.user."""
    project_id = _create_project(api, "Filters")
    first = _create_task(api, project_id, "first", api.user.id, "High")
    second = _create_task(api, project_id, "second", api.other.id, "High")
    third = _create_task(api, project_id, "third", api.user.id, "Low")
    api.client.patch(f"/api/task/{third['id']}", json={"status": "Done"}, headers=api.user_headers)
    return {"project_id": project_id, "first": first, "second": second, "third": third}


class TestProjectTasks:
    def _titles(self, api, seeded, query: str = "", headers=None) -> list[str]:
        resp = api.client.get(f"/api/projects/{seeded['project_id']}{query}", headers=headers or api.user_headers)
        assert resp.status_code == 200, resp.text
        return [t["title"] for t in resp.json()]

    def test_newest_first(self, api, seeded) -> None:
        assert self._titles(api, seeded) == ["third", "second", "first"]

    def test_assigned_to_me(self, api, seeded) -> None:
        assert self._titles(api, seeded, "?assignedTo=true") == ["third", "first"]
        assert self._titles(api, seeded, "?assignedTo=true", api.other_headers) == ["second"]

    def test_assigned_to_false_is_no_filter(self, api, seeded) -> None:
        assert len(self._titles(api, seeded, "?assignedTo=false")) == 3

    def test_priority(self, api, seeded) -> None:
        assert self._titles(api, seeded, "?priority=High") == ["second", "first"]

    def test_status_with_space(self, api, seeded) -> None:
        assert self._titles(api, seeded, "?status=Done") == ["third"]
        assert self._titles(api, seeded, "?status=In%20Progress") == []

    def test_filters_combine(self, api, seeded) -> None:
        assert self._titles(api, seeded, "?assignedTo=true&priority=High&status=Pending") == ["first"]

    def test_empty_values_ignored(self, api, seeded) -> None:
        assert len(self._titles(api, seeded, "?assignedTo=&priority=&status=")) == 3

    def test_invalid_priority(self, api, seeded) -> None:
        resp = api.client.get(f"/api/projects/{seeded['project_id']}?priority=Urgent", headers=api.user_headers)
        assert resp.status_code == 400
        assert "priority" in resp.json()["error"]["message"]

    def test_unknown_project(self, api) -> None:
        resp = api.client.get("/api/projects/99999", headers=api.user_headers)
        assert resp.status_code == 404

    def test_non_numeric_id(self, api) -> None:
        resp = api.client.get("/api/projects/abc", headers=api.user_headers)
        assert resp.status_code == 400

    def test_response_uses_wire_names(self, api, seeded) -> None:
        resp = api.client.get(f"/api/projects/{seeded['project_id']}", headers=api.user_headers)
        task = resp.json()[0]
        assert set(task) == {"id", "title", "description", "assignedTo", "projectId", "status", "priority", "createdAt"}
