"""Common data models and utilities for the application."""

from .task import Task, TaskStatus
from .user import Role, User

__all__ = ["Role", "Task", "TaskStatus", "User"]
