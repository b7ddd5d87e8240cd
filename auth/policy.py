"""
auth/policy.py -- Access control evaluator.

Every permission decision in Taskboard is a lookup in _POLICY. There are two
roles and one ownership relation (task -> assignee), so a rule is a pure
function of the requester's role and whether they are the assignee. Route
handlers and services never compare role strings themselves.

Decisions are all-or-nothing per request: a denied update is rejected before
its payload is looked at, and an allowed one is never partially applied.
Which fields an allowed caller may touch is answered separately by
editable_task_fields(); the service turns a mismatch into a 400.

Layer rule: no imports from api/ or tracker/. Ownership is passed in as the
assignee's user id rather than a Task so auth/ stays independent of tracker/.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from auth.models import Role, User


class Action(str, Enum):
    LIST_USERS = "list_users"
    CREATE_PROJECT = "create_project"
    READ_PROJECTS = "read_projects"
    CREATE_TASK = "create_task"
    READ_TASKS = "read_tasks"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    COMMENT_ON_TASK = "comment_on_task"
    READ_COMMENTS = "read_comments"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


# Fields of a Task that each kind of caller may change on PATCH.
ADMIN_TASK_FIELDS: frozenset[str] = frozenset({"title", "description", "priority", "assigned_to", "status"})
ASSIGNEE_TASK_FIELDS: frozenset[str] = frozenset({"status"})

# A rule receives (role, is_assignee).
_Rule = Callable[[Role, bool], bool]


def _admin_only(role: Role, is_assignee: bool) -> bool:
    return role is Role.admin


def _any_user(role: Role, is_assignee: bool) -> bool:
    return True


def _admin_or_assignee(role: Role, is_assignee: bool) -> bool:
    return role is Role.admin or (role is Role.user and is_assignee)


_POLICY: dict[Action, _Rule] = {
    Action.LIST_USERS: _admin_only,
    Action.CREATE_PROJECT: _admin_only,
    Action.READ_PROJECTS: _any_user,
    Action.CREATE_TASK: _admin_only,
    Action.READ_TASKS: _any_user,
    Action.UPDATE_TASK: _admin_or_assignee,
    Action.DELETE_TASK: _admin_only,
    Action.COMMENT_ON_TASK: _any_user,
    Action.READ_COMMENTS: _any_user,
}

# Actions whose rule depends on task ownership. authorize() refuses to guess
# for these when no assignee id is supplied.
OWNERSHIP_ACTIONS: frozenset[Action] = frozenset({Action.UPDATE_TASK})


def _is_assignee(user: User, assignee_id: int | None) -> bool:
    return assignee_id is not None and user.id is not None and user.id == assignee_id


def authorize(user: User, action: Action, assignee_id: int | None = None) -> Decision:
    """Decide whether user may perform action.

    assignee_id is the assigned_to of the task being acted on; it is
    required for OWNERSHIP_ACTIONS and ignored otherwise.
    """
    if action in OWNERSHIP_ACTIONS and assignee_id is None:
        raise ValueError(f"{action.value} requires the task's assignee id")
    rule = _POLICY[action]
    allowed = rule(Role(user.role), _is_assignee(user, assignee_id))
    return Decision.ALLOW if allowed else Decision.DENY


def editable_task_fields(user: User, assignee_id: int | None) -> frozenset[str]:
    """Return the task fields user may change on a task assigned to assignee_id.

    Admin: every mutable field. Assignee with role user: status only.
    Anyone else: nothing (authorize() denies them first).
    """
    if Role(user.role) is Role.admin:
        return ADMIN_TASK_FIELDS
    if _is_assignee(user, assignee_id):
        return ASSIGNEE_TASK_FIELDS
    return frozenset()
