"""
api/routes/projects.py -- Project endpoints.

Routes:
  POST /api/projects                -- create project (admin)
  GET  /api/projects                -- list every project
  GET  /api/projects/{project_id}   -- the project's tasks, filtered

Filters on the task listing (all optional, combined with AND):
  assignedTo=true     -- only tasks assigned to the requester
  priority=<Low|Medium|High>
  status=<Pending|In Progress|Done>
Empty values are treated as absent so a frontend can always send all three.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from api.models import MAX_ID, ProjectCreate, ProjectCreatedResponse, ProjectResponse, TaskResponse
from auth.dependencies import get_current_user, require
from auth.models import User
from auth.policy import Action
from core.errors import ValidationError
from tracker.models import TaskPriority, TaskStatus
from tracker.service import ProjectService, TaskService

# Auth policy:
# - POST /api/projects:       Action.CREATE_PROJECT (admin)
# - GET  /api/projects:       requires auth
# - GET  /api/projects/{id}:  requires auth
router = APIRouter()

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


@dataclass
class TaskFilters:
    assigned_to_me: bool = False
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None


def _parse_enum(enum_cls: type[Enum], raw: Optional[str], name: str):
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Request validation failed: {name}: must be one of {allowed}") from None


def task_filters(
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    priority: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
) -> TaskFilters:
    """Parse the listing filters from the query string."""
    flag = (assigned_to or "").strip().lower()
    if flag and flag not in _TRUE | _FALSE:
        raise ValidationError("Request validation failed: assignedTo: must be true or false")
    return TaskFilters(
        assigned_to_me=flag in _TRUE,
        priority=_parse_enum(TaskPriority, priority, "priority"),
        status=_parse_enum(TaskStatus, status, "status"),
    )


@router.post("/projects", response_model=ProjectCreatedResponse, status_code=201)
def create_project(
    request: Request,
    body: ProjectCreate,
    current_user: User = Depends(require(Action.CREATE_PROJECT)),
) -> ProjectCreatedResponse:
    projects: ProjectService = request.app.state.projects
    project = projects.create(current_user, body.title, body.description)
    return ProjectCreatedResponse(
        message="Project created successfully.",
        project=ProjectResponse.from_domain(project),
    )


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> list[ProjectResponse]:
    """Every project, visible to every authenticated user."""
    projects: ProjectService = request.app.state.projects
    return [ProjectResponse.from_domain(p) for p in projects.list_all(current_user)]


@router.get("/projects/{project_id}", response_model=list[TaskResponse])
def list_project_tasks(
    request: Request,
    project_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    filters: TaskFilters = Depends(task_filters),
) -> list[TaskResponse]:
    """Tasks of one project, newest first, narrowed by the query filters."""
    tasks: TaskService = request.app.state.tasks
    found = tasks.list_for_project(
        current_user,
        project_id,
        assigned_to_me=filters.assigned_to_me,
        priority=filters.priority,
        status=filters.status,
    )
    return [TaskResponse.from_domain(t) for t in found]
