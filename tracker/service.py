"""
tracker/service.py -- Project, task and comment operations gated by the policy table.

Each service method takes the requesting User first and checks the matching
auth.policy.Action before touching the store. All checks that can fail --
permission, field set, referenced records -- run before the first write, so
a rejected request never leaves a partial change behind.

Services raise core.errors exceptions; they know nothing about HTTP.

Usage:
    tasks = TaskService(tracker_store, user_store)
    task = tasks.create(admin, title="Draft roadmap", description="v1", assigned_to=u.id, project_id=p.id)
    task = tasks.authorize_update(u, task.id)
    tasks.update(u, task, {"status": TaskStatus.in_progress})
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from auth.models import User
from auth.policy import ASSIGNEE_TASK_FIELDS, Action, Decision, authorize, editable_task_fields
from auth.store import UserStore
from core.errors import AuthorizationError, NotFoundError, ValidationError
from tracker.models import Comment, Project, Task, TaskPriority, TaskStatus
from tracker.store import TrackerStore

logger = logging.getLogger("taskboard.tracker")

STATUS_REQUIRED = "Status field is required for updates; assignees may only change status."


def _require(user: User, action: Action, assignee_id: Optional[int] = None, message: str = "") -> None:
    if authorize(user, action, assignee_id) is Decision.DENY:
        raise AuthorizationError(message or "User is not authorized.")


class ProjectService:
    def __init__(self, store: TrackerStore) -> None:
        self._store = store

    def create(self, user: User, title: str, description: str) -> Project:
        _require(user, Action.CREATE_PROJECT)
        project_id = self._store.create_project(Project(title=title, description=description, created_by=user.id))
        logger.info("Project %d created by user %d", project_id, user.id)
        return self._store.get_project(project_id)

    def list_all(self, user: User) -> list[Project]:
        """Every project, regardless of membership."""
        _require(user, Action.READ_PROJECTS)
        return self._store.list_projects()

    def get(self, user: User, project_id: int) -> Project:
        _require(user, Action.READ_PROJECTS)
        project = self._store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        return project


class TaskService:
    def __init__(self, store: TrackerStore, users: UserStore) -> None:
        self._store = store
        self._users = users

    def _get_or_404(self, task_id: int) -> Task:
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        return task

    def _ensure_user_exists(self, user_id: int) -> None:
        if self._users.get_by_id(user_id) is None:
            raise NotFoundError("Assigned user not found.")

    def create(
        self,
        user: User,
        title: str,
        description: str,
        assigned_to: int,
        project_id: int,
        priority: TaskPriority = TaskPriority.medium,
    ) -> Task:
        """Create a task after confirming the assignee and project both exist.

        The existence checks run before the insert, so a bad reference never
        produces an orphaned task.
        """
        _require(user, Action.CREATE_TASK)
        self._ensure_user_exists(assigned_to)
        if self._store.get_project(project_id) is None:
            raise NotFoundError("Project not found.")
        task_id = self._store.create_task(
            Task(
                title=title,
                description=description,
                assigned_to=assigned_to,
                project_id=project_id,
                priority=priority,
            )
        )
        logger.info("Task %d created in project %d, assigned to user %d", task_id, project_id, assigned_to)
        return self._store.get_task(task_id)

    def get(self, user: User, task_id: int) -> Task:
        _require(user, Action.READ_TASKS)
        return self._get_or_404(task_id)

    def list_all(self, user: User) -> list[Task]:
        _require(user, Action.READ_TASKS)
        return self._store.list_tasks()

    def list_for_project(
        self,
        user: User,
        project_id: int,
        assigned_to_me: bool = False,
        priority: Optional[TaskPriority] = None,
        status: Optional[TaskStatus] = None,
    ) -> list[Task]:
        """Return the project's tasks, newest first, narrowed by every given filter.

        assigned_to_me restricts to tasks assigned to the requester.
        """
        _require(user, Action.READ_TASKS)
        if self._store.get_project(project_id) is None:
            raise NotFoundError("Project not found.")
        return self._store.list_project_tasks(
            project_id,
            assigned_to=user.id if assigned_to_me else None,
            priority=priority,
            status=status,
        )

    def authorize_update(self, user: User, task_id: int) -> Task:
        """Load the task and apply the update gate. Runs before payload validation.

        A caller who is neither admin nor assignee is refused here whatever
        their payload contains.
        """
        task = self._get_or_404(task_id)
        if authorize(user, Action.UPDATE_TASK, task.assigned_to) is Decision.DENY:
            logger.warning("User %d denied update on task %d", user.id, task.id)
            raise AuthorizationError("You don't have permission to update this task.")
        return task

    def update(self, user: User, task: Task, changes: dict[str, Any]) -> Task:
        """Apply changes (task field name -> new value) to task as user.

        The whole field set is accepted or the whole request is rejected:
          - an assignee must send status and nothing else;
          - anyone sending a field outside their editable set is refused;
          - an empty change set is refused;
          - a new assignee must exist.
        Last write wins; there is no version check against concurrent updates.
        """
        if authorize(user, Action.UPDATE_TASK, task.assigned_to) is Decision.DENY:
            raise AuthorizationError("You don't have permission to update this task.")

        allowed = editable_task_fields(user, task.assigned_to)
        disallowed = sorted(set(changes) - allowed)
        if allowed == ASSIGNEE_TASK_FIELDS and ("status" not in changes or disallowed):
            detail = f"Not permitted: {', '.join(disallowed)}" if disallowed else None
            raise ValidationError(STATUS_REQUIRED, detail)
        if disallowed:
            raise ValidationError(f"Fields not permitted: {', '.join(disallowed)}")
        if not changes:
            raise ValidationError("No fields to update.")

        if "assigned_to" in changes:
            self._ensure_user_exists(changes["assigned_to"])

        if not self._store.update_task(task.id, **changes):
            raise NotFoundError("Task not found.")
        logger.info("Task %d updated by user %d (%s)", task.id, user.id, ", ".join(sorted(changes)))
        return self._store.get_task(task.id)

    def delete(self, user: User, task_id: int) -> None:
        _require(user, Action.DELETE_TASK)
        if not self._store.delete_task(task_id):
            raise NotFoundError("Task not found.")
        logger.info("Task %d deleted by user %d", task_id, user.id)


class CommentService:
    def __init__(self, store: TrackerStore) -> None:
        self._store = store

    def _ensure_task_exists(self, task_id: int) -> None:
        if self._store.get_task(task_id) is None:
            raise NotFoundError("Task not found.")

    def add(self, user: User, task_id: int, body: str) -> Comment:
        _require(user, Action.COMMENT_ON_TASK)
        self._ensure_task_exists(task_id)
        comment_id = self._store.create_comment(Comment(body=body, author_id=user.id, task_id=task_id))
        return self._store.get_comment(comment_id)

    def list_for_task(self, user: User, task_id: int) -> list[Comment]:
        """Comments on the task, oldest first (newest last)."""
        _require(user, Action.READ_COMMENTS)
        self._ensure_task_exists(task_id)
        return self._store.list_comments(task_id)
