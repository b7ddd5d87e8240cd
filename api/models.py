"""
API request and response models for Taskboard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer
and double as the request validation layer: malformed input is rejected here,
before any service runs. They are intentionally separate from the dataclasses
in auth/models.py and tracker/models.py, which own the internal domain
representation. Route handlers map between the two via the from_domain()
factories below.

Wire names are camelCase (assignedTo, projectId, createdAt); Python attribute
names stay snake_case. populate_by_name lets tests and handlers build models
with either.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from auth.models import Role, User
from tracker.models import Comment, Project, Task, TaskPriority, TaskStatus


# Ids are SQLite INTEGER primary keys: signed 64-bit. Anything larger can't
# name a row and would overflow the driver, so it is rejected as a 400.
MAX_ID = 2**63 - 1


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def format_validation_errors(errors: list[dict]) -> str:
    """Render pydantic error dicts as "field: reason; field: reason".

    The request-section prefix ("body", "query", "path") is dropped from each
    location so clients see the field name they sent.
    """
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(_WireModel):
    """Request body for POST /api/auth/register."""

    model_config = ConfigDict(str_strip_whitespace=True)

    fullname: str = Field(min_length=3, max_length=255)
    email: EmailStr
    # bcrypt only looks at the first 72 bytes.
    password: str = Field(min_length=6, max_length=72)
    role: Role = Role.user


class LoginRequest(_WireModel):
    """Request body for POST /api/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=6, max_length=72)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class AuthResponse(_WireModel):
    """Response for register and login: the bearer token plus a human message."""

    message: str
    token: str


class UserResponse(_WireModel):
    """Public view of a user. There is deliberately no password field."""

    model_config = ConfigDict(frozen=True)

    id: int
    fullname: str
    email: str
    role: Role
    created_at: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            fullname=user.fullname,
            email=user.email,
            role=user.role,
            created_at=user.created_at or "",
        )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class ProjectCreate(_WireModel):
    """Request body for POST /api/projects."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=10_000)


class ProjectResponse(_WireModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    created_by: int
    created_at: str

    @classmethod
    def from_domain(cls, project: Project) -> "ProjectResponse":
        return cls(
            id=project.id,
            title=project.title,
            description=project.description,
            created_by=project.created_by,
            created_at=project.created_at,
        )


class ProjectCreatedResponse(_WireModel):
    message: str
    project: ProjectResponse


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskCreate(_WireModel):
    """Request body for POST /api/task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=10_000)
    assigned_to: int = Field(gt=0, le=MAX_ID)
    project_id: int = Field(gt=0, le=MAX_ID)
    priority: TaskPriority = TaskPriority.medium


class TaskPatch(_WireModel):
    """Request body for PATCH /api/task/{id}.

    Only fields the client actually sent are applied (model_fields_set).
    Unknown fields and explicit nulls are validation errors, never ignored.
    Which of these fields a given caller may send is decided by
    TaskService.update(), not here.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1, max_length=10_000)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assigned_to: Optional[int] = Field(default=None, gt=0, le=MAX_ID)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "TaskPatch":
        nulls = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if nulls:
            raise ValueError(f"null is not allowed for: {', '.join(to_camel(n) for n in nulls)}")
        return self

    def changes(self) -> dict:
        """Return {field_name: value} for the fields present in the request."""
        return self.model_dump(exclude_unset=True)


class TaskResponse(_WireModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    assigned_to: int
    project_id: int
    status: TaskStatus
    priority: TaskPriority
    created_at: str

    @classmethod
    def from_domain(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            assigned_to=task.assigned_to,
            project_id=task.project_id,
            status=task.status,
            priority=task.priority,
            created_at=task.created_at,
        )


class TaskEnvelope(_WireModel):
    """Response for task create and update."""

    message: str
    task: TaskResponse


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class CommentCreate(_WireModel):
    """Request body for POST /api/task/{id}/comment."""

    model_config = ConfigDict(str_strip_whitespace=True)

    comment: str = Field(min_length=1, max_length=5_000)


class CommentResponse(_WireModel):
    model_config = ConfigDict(frozen=True)

    id: int
    comment: str
    commented_by: int
    task_id: int
    created_at: str

    @classmethod
    def from_domain(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            comment=comment.body,
            commented_by=comment.author_id,
            task_id=comment.task_id,
            created_at=comment.created_at,
        )


class CommentCreatedResponse(_WireModel):
    message: str
    comment: CommentResponse


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class ErrorDetail(BaseModel):
    """Error payload: a short code, a human message, optional extra context."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
