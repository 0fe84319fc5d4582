"""Task routes for the FastAPI application.

Every route re-checks permissions server-side with the same rules the client
applies before sending a request.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskweb.auth import AuthQueries, UserResponse, Validate
from taskweb.common import User
from taskweb.permissions import (
    can_assign_task,
    can_change_status,
    can_create_task,
    can_delete_task,
    can_edit_task,
    can_view_task,
)

from .models import StatusUpdate, TaskCreate, TaskResponse, TaskStats, TaskUpdate
from .queries import TaskQueries

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


def _require(allowed: bool, user: User, action: str) -> None:  # noqa: FBT001
    if not allowed:
        LOGGER.debug("User %s is not allowed to %s", user.username, action)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")


async def _existing_task(task_queries: TaskQueries, task_id: int) -> TaskResponse:
    task = await task_queries.get_task(task_id)
    if task is None:
        raise _not_found()
    return task


async def _check_assignee(
    auth_queries: AuthQueries,
    assigned_to_id: int | None,
) -> None:
    if assigned_to_id is None:
        return
    if await auth_queries.get_user_by_id(assigned_to_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Assigned user {assigned_to_id} does not exist",
        )


async def _create_task(
    auth_queries: AuthQueries,
    task_queries: TaskQueries,
    data: TaskCreate,
    user: User,
) -> TaskResponse:
    _require(can_create_task(user), user, "create tasks")
    if data.assigned_to_id is not None:
        _require(can_assign_task(user), user, "assign tasks")
    await _check_assignee(auth_queries, data.assigned_to_id)

    task = await task_queries.create_task(user, data)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create task",
        )
    return task


async def _update_task(
    auth_queries: AuthQueries,
    task_queries: TaskQueries,
    task_id: int,
    data: TaskUpdate,
    user: User,
) -> TaskResponse:
    """Edit a task, checking each changed aspect separately.

    Reassigning needs the assign permission and a status change needs the
    status permission, on top of the edit permission itself.
    """
    existing = await _existing_task(task_queries, task_id)
    task = existing.to_task()
    _require(can_edit_task(user, task), user, f"edit task {task_id}")

    changes = data.model_dump(include=data.model_fields_set)
    if changes.get("title", "") is None or changes.get("description", "") is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and description cannot be null",
        )
    if changes.get("status", "") is None:
        changes.pop("status")

    if "assigned_to_id" in changes and changes["assigned_to_id"] != task.assigned_to_id:
        _require(can_assign_task(user), user, f"reassign task {task_id}")
        await _check_assignee(auth_queries, changes["assigned_to_id"])

    if "status" in changes and changes["status"] != task.status:
        _require(can_change_status(user, task), user, f"change status of {task_id}")

    updated = await task_queries.update_task(task_id, changes)
    if updated is None:
        raise _not_found()
    return updated


def configure_task_router(
    router: APIRouter,
    task_queries: TaskQueries,
    validate: Validate,
) -> APIRouter:
    """Configure the task router with necessary dependencies.

    :param router: The FastAPI APIRouter to configure
    :param task_queries: Repository for task storage
    :param validate: The Validate instance for authentication
    :return: The configured APIRouter
    """
    auth_queries = validate.auth_queries

    @router.get("", response_model=list[TaskResponse])
    async def list_tasks(
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> list[TaskResponse]:
        return await task_queries.list_tasks(user)

    @router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
    async def create_task(
        data: TaskCreate,
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> TaskResponse:
        return await _create_task(auth_queries, task_queries, data, user)

    @router.get("/users", response_model=list[UserResponse])
    async def list_users(
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> list[UserResponse]:
        _require(can_assign_task(user), user, "list users")
        return [UserResponse.from_user(u) for u in await auth_queries.list_users()]

    @router.get("/users/search", response_model=list[UserResponse])
    async def search_users(
        query: Annotated[str, Query(min_length=1)],
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> list[UserResponse]:
        _require(can_assign_task(user), user, "search users")
        found = await auth_queries.search_users(query)
        return [UserResponse.from_user(u) for u in found]

    @router.get("/stats", response_model=TaskStats)
    async def task_stats(
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> TaskStats:
        return await task_queries.stats(user)

    @router.get("/{task_id}", response_model=TaskResponse)
    async def get_task(
        task_id: int,
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> TaskResponse:
        task = await _existing_task(task_queries, task_id)
        if not can_view_task(user, task.to_task()):
            raise _not_found()
        return task

    @router.put("/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: int,
        data: TaskUpdate,
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> TaskResponse:
        return await _update_task(auth_queries, task_queries, task_id, data, user)

    @router.patch("/{task_id}/status", response_model=TaskResponse)
    async def update_status(
        task_id: int,
        data: StatusUpdate,
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> TaskResponse:
        task = await _existing_task(task_queries, task_id)
        _require(
            can_change_status(user, task.to_task()),
            user,
            f"change status of {task_id}",
        )
        updated = await task_queries.update_status(task_id, data.status)
        if updated is None:
            raise _not_found()
        LOGGER.debug("Task %s moved to %s by %s", task_id, data.status, user.username)
        return updated

    @router.delete("/{task_id}")
    async def delete_task(
        task_id: int,
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> str:
        _require(can_delete_task(user), user, f"delete task {task_id}")
        if not await task_queries.delete_task(task_id):
            raise _not_found()
        return "Success"

    return router
