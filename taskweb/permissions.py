"""Role and ownership based permission checks for tasks.

Every check is a pure function of the current user and, where relevant, the
task being acted on. No check performs I/O or raises: a missing user is
denied everything, and a role value that is not a recognized ``Role`` is
treated as the least privileged role.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from taskweb.common import Role

if TYPE_CHECKING:
    from taskweb.common import Task, User

ELEVATED_ROLES = frozenset({Role.ADMINISTRATOR, Role.SUPERVISOR})


class Action(StrEnum):
    """Actions a user can attempt on tasks."""

    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    ASSIGN = "assign"
    SEE_ALL = "see_all"
    CHANGE_STATUS = "change_status"
    VIEW = "view"


def effective_role(user: User | None) -> Role | None:
    """Return the role used for permission decisions.

    :param user: The current user, or None when nobody is logged in
    :return: The user's role, ``Role.USER`` for unrecognized role values,
        or None without a user
    """
    if user is None:
        return None
    role = getattr(user, "role", None)
    if isinstance(role, Role):
        return role
    if isinstance(role, int):
        return Role.resolve(role_id=role)
    return Role.resolve(role)


def _is_elevated(user: User | None) -> bool:
    return effective_role(user) in ELEVATED_ROLES


def _is_same_user(user: User, user_id: int | None) -> bool:
    return user_id is not None and user_id == user.id


def can_create_task(user: User | None) -> bool:
    return _is_elevated(user)


def can_edit_task(user: User | None, task: Task) -> bool:
    """Elevated roles edit any task, everyone else only tasks they created."""
    if user is None:
        return False
    return _is_elevated(user) or _is_same_user(user, task.creator_id)


def can_delete_task(user: User | None) -> bool:
    return _is_elevated(user)


def can_assign_task(user: User | None) -> bool:
    return _is_elevated(user)


def can_see_all_tasks(user: User | None) -> bool:
    """Whether the user may list every task.

    Users without this permission see the tasks they created or were
    assigned; the query layer applies that filter.
    """
    return _is_elevated(user)


def can_change_status(user: User | None, task: Task) -> bool:
    """Elevated roles change any status, everyone else only when assigned."""
    if user is None:
        return False
    return _is_elevated(user) or _is_same_user(user, task.assigned_to_id)


def can_view_task(user: User | None, task: Task) -> bool:
    if user is None:
        return False
    return (
        _is_elevated(user)
        or _is_same_user(user, task.creator_id)
        or _is_same_user(user, task.assigned_to_id)
    )


_GLOBAL_CHECKS = {
    Action.CREATE: can_create_task,
    Action.DELETE: can_delete_task,
    Action.ASSIGN: can_assign_task,
    Action.SEE_ALL: can_see_all_tasks,
}

_TASK_CHECKS = {
    Action.EDIT: can_edit_task,
    Action.CHANGE_STATUS: can_change_status,
    Action.VIEW: can_view_task,
}


def is_allowed(user: User | None, action: Action, task: Task | None = None) -> bool:
    """Dispatch a permission check by action.

    :param user: The current user, or None
    :param action: The attempted action
    :param task: The target task, required for task-scoped actions
    :return: True if the action is allowed
    """
    if action in _GLOBAL_CHECKS:
        return _GLOBAL_CHECKS[action](user)
    check = _TASK_CHECKS.get(action)
    if check is None or task is None:
        return False
    return check(user, task)
