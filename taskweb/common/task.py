"""Task data model as seen by the authorization rules."""

from dataclasses import dataclass
from enum import StrEnum


class TaskStatus(StrEnum):
    """Lifecycle states of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass(frozen=True)
class Task:
    """Data structure representing a task.

    :param id: Task id assigned by the server
    :param title: Short title
    :param status: Current status
    :param creator_id: Id of the user who created the task
    :param assigned_to_id: Id of the assigned user, if any
    :param description: Free text description
    """

    id: int
    title: str
    status: TaskStatus
    creator_id: int
    assigned_to_id: int | None = None
    description: str = ""
