"""Request and response models for task routes."""

from __future__ import annotations

from pydantic import BaseModel, Field

from taskweb.common import Task, TaskStatus


class TaskCreate(BaseModel):
    """Body of a task creation request."""

    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    assigned_to_id: int | None = None


class TaskUpdate(BaseModel):
    """Body of a task edit request; unset fields are left unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    assigned_to_id: int | None = None
    status: TaskStatus | None = None


class StatusUpdate(BaseModel):
    """Body of a status change request."""

    status: TaskStatus


class TaskResponse(BaseModel):
    """Data structure representing a task on the wire."""

    id: int
    title: str
    description: str
    status: TaskStatus
    creator_id: int
    assigned_to_id: int | None
    created_at: str | None = None
    updated_at: str | None = None

    def to_task(self) -> Task:
        return Task(
            id=self.id,
            title=self.title,
            status=self.status,
            creator_id=self.creator_id,
            assigned_to_id=self.assigned_to_id,
            description=self.description,
        )


class TaskStats(BaseModel):
    """Task counts per status over the tasks visible to the caller."""

    total: int
    pending: int
    in_progress: int
    done: int
