"""Task storage and routes."""

from .models import StatusUpdate, TaskCreate, TaskResponse, TaskStats, TaskUpdate
from .queries import TaskQueries
from .task_routes import configure_task_router

__all__ = [
    "StatusUpdate",
    "TaskCreate",
    "TaskQueries",
    "TaskResponse",
    "TaskStats",
    "TaskUpdate",
    "configure_task_router",
]
