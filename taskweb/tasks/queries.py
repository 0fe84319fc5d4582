"""Task database utilities.

Using the TaskQueries class as a repository for task-related queries. Which
tasks a caller may see is decided here, in SQL, from the same permission
rules the routes use.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskweb.common import TaskStatus
from taskweb.permissions import can_see_all_tasks

from .models import TaskCreate, TaskResponse, TaskStats

if TYPE_CHECKING:
    from aiosqlite import Connection

    from taskweb.common import User

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_TASK_COLUMNS = (
    "id, title, description, status, creator_id, assigned_to_id, "
    "created_at, updated_at"
)

_EDITABLE_COLUMNS = frozenset({"title", "description", "assigned_to_id", "status"})


class TaskQueries:
    """Repository for task-related queries."""

    CREATE_TASKS_TABLE = """
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'pending',
            creator_id INTEGER NOT NULL,
            assigned_to_id INTEGER,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (creator_id) REFERENCES users (id) ON DELETE CASCADE,
            FOREIGN KEY (assigned_to_id) REFERENCES users (id) ON DELETE SET NULL
        );
        """

    GET_TASK = f"""
        SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?;
        """  # noqa: S608

    LIST_ALL_TASKS = f"""
        SELECT {_TASK_COLUMNS} FROM tasks ORDER BY created_at DESC, id DESC;
        """  # noqa: S608

    LIST_OWN_TASKS = f"""
        SELECT {_TASK_COLUMNS} FROM tasks
        WHERE creator_id = ? OR assigned_to_id = ?
        ORDER BY created_at DESC, id DESC;
        """  # noqa: S608

    ADD_TASK = """
        INSERT INTO tasks (title, description, status, creator_id, assigned_to_id)
        VALUES (?, ?, ?, ?, ?);
        """

    UPDATE_STATUS = """
        UPDATE tasks SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?;
        """

    DELETE_TASK = """
        DELETE FROM tasks WHERE id = ?;
        """

    COUNT_ALL_BY_STATUS = """
        SELECT status, COUNT(*) FROM tasks GROUP BY status;
        """

    COUNT_OWN_BY_STATUS = """
        SELECT status, COUNT(*) FROM tasks
        WHERE creator_id = ? OR assigned_to_id = ?
        GROUP BY status;
        """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @staticmethod
    def _row_to_task(row: tuple) -> TaskResponse:
        (
            task_id,
            title,
            description,
            status,
            creator_id,
            assigned_to_id,
            created_at,
            updated_at,
        ) = row
        return TaskResponse(
            id=task_id,
            title=title,
            description=description,
            status=TaskStatus(status),
            creator_id=creator_id,
            assigned_to_id=assigned_to_id,
            created_at=str(created_at) if created_at is not None else None,
            updated_at=str(updated_at) if updated_at is not None else None,
        )

    async def initialize_tables(self) -> None:
        """Create the tasks table if it does not exist.

        Must run after the users table exists.
        """
        try:
            await self.connection.execute(TaskQueries.CREATE_TASKS_TABLE)
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error initializing tasks table")
            raise

    async def get_task(self, task_id: int) -> TaskResponse | None:
        """Get a single task by id.

        :param task_id: The task id
        :return: The task, or None if it does not exist
        """
        result = await self.connection.execute(TaskQueries.GET_TASK, (task_id,))
        row = await result.fetchone()
        return self._row_to_task(row) if row else None

    async def list_tasks(self, user: User) -> list[TaskResponse]:
        """List the tasks visible to the given user.

        :param user: The user listing tasks
        :return: Every task for elevated roles, otherwise the tasks the user
            created or is assigned to
        """
        if can_see_all_tasks(user):
            result = await self.connection.execute(TaskQueries.LIST_ALL_TASKS)
        else:
            result = await self.connection.execute(
                TaskQueries.LIST_OWN_TASKS,
                (user.id, user.id),
            )
        rows = await result.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def create_task(self, creator: User, data: TaskCreate) -> TaskResponse | None:
        """Store a new pending task.

        :param creator: The user creating the task
        :param data: Title, description and optional assignee
        :return: The stored task, or None if it could not be stored
        """
        try:
            result = await self.connection.execute(
                TaskQueries.ADD_TASK,
                (
                    data.title,
                    data.description,
                    str(TaskStatus.PENDING),
                    creator.id,
                    data.assigned_to_id,
                ),
            )
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error creating task for %s", creator.username)
            return None

        LOGGER.debug("Task %s created by %s", result.lastrowid, creator.username)
        return await self.get_task(result.lastrowid)

    async def update_task(
        self,
        task_id: int,
        changes: dict[str, object],
    ) -> TaskResponse | None:
        """Apply field changes to a task.

        :param task_id: The task id
        :param changes: Column names mapped to new values
        :return: The updated task, or None if it does not exist or failed
        """
        unknown = set(changes) - _EDITABLE_COLUMNS
        if unknown:
            msg = f"Cannot update task columns: {sorted(unknown)}"
            raise ValueError(msg)

        if not changes:
            return await self.get_task(task_id)

        columns = sorted(changes)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = [
            str(value) if isinstance(value, TaskStatus) else value
            for value in (changes[column] for column in columns)
        ]

        # column names come from the _EDITABLE_COLUMNS whitelist
        query = (
            f"UPDATE tasks SET {assignments}, "  # noqa: S608
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?"
        )
        try:
            result = await self.connection.execute(query, [*params, task_id])
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error updating task %s", task_id)
            return None

        if not result.rowcount:
            return None
        return await self.get_task(task_id)

    async def update_status(
        self,
        task_id: int,
        status: TaskStatus,
    ) -> TaskResponse | None:
        """Set the status of a task.

        :param task_id: The task id
        :param status: The new status
        :return: The updated task, or None if it does not exist or failed
        """
        try:
            result = await self.connection.execute(
                TaskQueries.UPDATE_STATUS,
                (str(status), task_id),
            )
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error updating status of task %s", task_id)
            return None

        if not result.rowcount:
            return None
        return await self.get_task(task_id)

    async def delete_task(self, task_id: int) -> int:
        """Delete a task.

        :param task_id: The task id
        :return: Number of rows deleted
        """
        try:
            result = await self.connection.execute(TaskQueries.DELETE_TASK, (task_id,))
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error deleting task %s", task_id)
            return 0
        else:
            return result.rowcount if result else 0

    async def stats(self, user: User) -> TaskStats:
        """Count the tasks visible to the user by status."""
        if can_see_all_tasks(user):
            result = await self.connection.execute(TaskQueries.COUNT_ALL_BY_STATUS)
        else:
            result = await self.connection.execute(
                TaskQueries.COUNT_OWN_BY_STATUS,
                (user.id, user.id),
            )
        counts = {
            TaskStatus(status): count for status, count in await result.fetchall()
        }
        return TaskStats(
            total=sum(counts.values()),
            pending=counts.get(TaskStatus.PENDING, 0),
            in_progress=counts.get(TaskStatus.IN_PROGRESS, 0),
            done=counts.get(TaskStatus.DONE, 0),
        )
