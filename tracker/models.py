"""
tracker/models.py -- Domain dataclasses for projects, tasks and comments.

These are pure data containers with zero logic. Permission rules live in
auth/policy.py; referential checks and update rules live in
tracker/service.py.

References between entities are ids (created_by, assigned_to, project_id,
author_id, task_id), never embedded copies. Callers that need the related
record look it up.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    """Task state. Any state may move to any other; there is no enforced order."""

    pending = "Pending"
    in_progress = "In Progress"
    done = "Done"


class TaskPriority(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


@dataclass
class Project:
    """A container for tasks. Created by an admin; never updated or deleted.

    id is None before the record is written to the database.
    """

    title: str
    description: str
    created_by: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class Task:
    """A unit of work inside exactly one project, assigned to exactly one user.

    id is None before the record is written to the database.
    """

    title: str
    description: str
    assigned_to: int
    project_id: int
    status: TaskStatus = TaskStatus.pending
    priority: TaskPriority = TaskPriority.medium
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class Comment:
    """Free-text note on a task. Append-only: never edited."""

    body: str
    author_id: int
    task_id: int
    id: Optional[int] = None
    created_at: str = ""
