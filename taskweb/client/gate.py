"""Local permission gate in front of task mutations.

Each mutation is checked against the permission rules for the logged-in
user before anything is sent. A denied action raises
:class:`~taskweb.client.exceptions.AuthorizationError` without a request;
an allowed one is forwarded to the task store through
:meth:`SessionManager.guard`, so an expired token logs the client out.

The server repeats every check. A 403 from the server surfaces as the same
``AuthorizationError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from taskweb.common import TaskStatus
from taskweb.permissions import (
    can_assign_task,
    can_change_status,
    can_create_task,
    can_delete_task,
    can_edit_task,
)

from .exceptions import AuthorizationError

if TYPE_CHECKING:
    from taskweb.common import Task

    from .session import SessionManager

LOGGER = logging.getLogger(__name__)

_UNSET: Any = object()


class TaskStore(Protocol):
    """Collaborator that persists task mutations."""

    async def update_status(self, task_id: int, status: TaskStatus) -> Task: ...

    async def create_task(
        self,
        title: str,
        description: str = "",
        assigned_to_id: int | None = None,
    ) -> Task: ...

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> Task: ...

    async def delete_task(self, task_id: int) -> None: ...


class TaskGate:
    """Checks task mutations locally before forwarding them.

    :param session: Session manager providing the current user
    :param tasks: Task store receiving allowed mutations
    """

    def __init__(self, session: SessionManager, tasks: TaskStore) -> None:
        self._session = session
        self._tasks = tasks

    def _require(self, allowed: bool, action: str) -> None:  # noqa: FBT001
        user = self._session.user
        if not allowed:
            LOGGER.debug(
                "Blocked %s for %s",
                action,
                user.username if user else "anonymous user",
            )
            msg = f"Not allowed to {action}"
            raise AuthorizationError(msg)

    async def change_status(self, task: Task, new_status: TaskStatus | str) -> Task:
        """Move a task to a new status.

        :param task: The task as last seen by the client
        :param new_status: The target status
        :return: The updated task returned by the store
        :raises ValueError: If the status is unknown
        :raises AuthorizationError: If the current user may not change it
        """
        status = TaskStatus(new_status)
        self._require(
            can_change_status(self._session.user, task),
            f"change the status of task {task.id}",
        )
        return await self._session.guard(self._tasks.update_status(task.id, status))

    async def create_task(
        self,
        title: str,
        description: str = "",
        assigned_to_id: int | None = None,
    ) -> Task:
        user = self._session.user
        self._require(can_create_task(user), "create tasks")
        if assigned_to_id is not None:
            self._require(can_assign_task(user), "assign tasks")
        return await self._session.guard(
            self._tasks.create_task(title, description, assigned_to_id),
        )

    async def edit_task(
        self,
        task: Task,
        *,
        title: str = _UNSET,
        description: str = _UNSET,
        assigned_to_id: int | None = _UNSET,
        status: TaskStatus | str = _UNSET,
    ) -> Task:
        """Edit a task, only sending the fields that were given.

        Reassigning also needs the assign permission, and changing the status
        also needs the status permission.
        """
        user = self._session.user
        self._require(can_edit_task(user, task), f"edit task {task.id}")

        changes: dict[str, Any] = {}
        if title is not _UNSET:
            changes["title"] = title
        if description is not _UNSET:
            changes["description"] = description
        if assigned_to_id is not _UNSET:
            if assigned_to_id != task.assigned_to_id:
                self._require(can_assign_task(user), f"reassign task {task.id}")
            changes["assigned_to_id"] = assigned_to_id
        if status is not _UNSET:
            new_status = TaskStatus(status)
            if new_status != task.status:
                self._require(
                    can_change_status(user, task),
                    f"change the status of task {task.id}",
                )
            changes["status"] = new_status

        return await self._session.guard(self._tasks.update_task(task.id, changes))

    async def assign_task(self, task: Task, assigned_to_id: int | None) -> Task:
        self._require(can_assign_task(self._session.user), f"assign task {task.id}")
        return await self._session.guard(
            self._tasks.update_task(task.id, {"assigned_to_id": assigned_to_id}),
        )

    async def delete_task(self, task: Task) -> None:
        self._require(can_delete_task(self._session.user), f"delete task {task.id}")
        await self._session.guard(self._tasks.delete_task(task.id))
