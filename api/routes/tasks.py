"""
api/routes/tasks.py -- Task and comment endpoints.

Routes:
  POST   /api/task                      -- create task (admin)
  GET    /api/task                      -- list every task
  GET    /api/task/{task_id}            -- one task
  PATCH  /api/task/{task_id}            -- update (admin: any field; assignee: status only)
  DELETE /api/task/{task_id}            -- delete task and its comments (admin)
  POST   /api/task/{task_id}/comment    -- add a comment
  GET    /api/task/{task_id}/comments   -- comments, oldest first

PATCH ordering: the task is loaded (404) and the update gate applied (403)
before the body is parsed, so a caller who may not touch the task gets 403
whatever they sent. Only then is the body validated against TaskPatch and
the caller's editable field set (400).
"""

from __future__ import annotations

from typing import Any

import pydantic
from fastapi import APIRouter, Body, Depends, Path, Request

from api.models import (
    MAX_ID,
    CommentCreate,
    CommentCreatedResponse,
    CommentResponse,
    MessageResponse,
    TaskCreate,
    TaskEnvelope,
    TaskPatch,
    TaskResponse,
    format_validation_errors,
)
from auth.dependencies import get_current_user, require
from auth.models import User
from auth.policy import Action
from core.errors import ValidationError
from tracker.service import CommentService, TaskService

# Auth policy:
# - POST   /api/task:                 Action.CREATE_TASK (admin)
# - GET    /api/task, /api/task/{id}: requires auth
# - PATCH  /api/task/{id}:            requires auth + Action.UPDATE_TASK checked against the task
# - DELETE /api/task/{id}:            Action.DELETE_TASK (admin)
# - POST   /api/task/{id}/comment:    requires auth
# - GET    /api/task/{id}/comments:   requires auth
router = APIRouter(prefix="/task")


def _tasks(request: Request) -> TaskService:
    return request.app.state.tasks


def _comments(request: Request) -> CommentService:
    return request.app.state.comments


@router.post("", response_model=TaskEnvelope, status_code=201)
def create_task(
    request: Request,
    body: TaskCreate,
    current_user: User = Depends(require(Action.CREATE_TASK)),
) -> TaskEnvelope:
    """Create a task. Assignee and project must already exist (404 otherwise)."""
    task = _tasks(request).create(
        current_user,
        title=body.title,
        description=body.description,
        assigned_to=body.assigned_to,
        project_id=body.project_id,
        priority=body.priority,
    )
    return TaskEnvelope(message="Task created successfully.", task=TaskResponse.from_domain(task))


@router.get("", response_model=list[TaskResponse])
def list_tasks(request: Request, current_user: User = Depends(get_current_user)) -> list[TaskResponse]:
    return [TaskResponse.from_domain(t) for t in _tasks(request).list_all(current_user)]


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    request: Request,
    task_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(get_current_user),
) -> TaskResponse:
    return TaskResponse.from_domain(_tasks(request).get(current_user, task_id))


@router.patch("/{task_id}", response_model=TaskEnvelope)
def update_task(
    request: Request,
    task_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(get_current_user),
    payload: Any = Body(default=None),
) -> TaskEnvelope:
    tasks = _tasks(request)
    task = tasks.authorize_update(current_user, task_id)
    try:
        patch = TaskPatch.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Request validation failed: {format_validation_errors(exc.errors())}") from None
    updated = tasks.update(current_user, task, patch.changes())
    return TaskEnvelope(message="Task updated successfully.", task=TaskResponse.from_domain(updated))


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    request: Request,
    task_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(require(Action.DELETE_TASK)),
) -> MessageResponse:
    _tasks(request).delete(current_user, task_id)
    return MessageResponse(message="Task deleted successfully.")


@router.post("/{task_id}/comment", response_model=CommentCreatedResponse, status_code=201)
def comment_on_task(
    request: Request,
    body: CommentCreate,
    task_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(get_current_user),
) -> CommentCreatedResponse:
    comment = _comments(request).add(current_user, task_id, body.comment)
    return CommentCreatedResponse(
        message="Comment added successfully.",
        comment=CommentResponse.from_domain(comment),
    )


@router.get("/{task_id}/comments", response_model=list[CommentResponse])
def list_comments(
    request: Request,
    task_id: int = Path(gt=0, le=MAX_ID),
    current_user: User = Depends(get_current_user),
) -> list[CommentResponse]:
    """Comments on the task, oldest first (newest last)."""
    return [CommentResponse.from_domain(c) for c in _comments(request).list_for_task(current_user, task_id)]
