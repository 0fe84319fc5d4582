"""HTTP client for the TaskWeb API.

Implements the credential and task storage collaborators on top of
``httpx``. Server answers are mapped onto the client exception types; no
request is ever retried here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from taskweb.auth.models import LoginResponse, UserResponse
from taskweb.tasks.models import TaskResponse, TaskStats

from .exceptions import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    NetworkError,
    SessionExpiredError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from taskweb.common import Task, TaskStatus, User

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

_LOGIN = TypeAdapter(LoginResponse)
_USER = TypeAdapter(UserResponse)
_USERS = TypeAdapter(list[UserResponse])
_TASK = TypeAdapter(TaskResponse)
_TASKS = TypeAdapter(list[TaskResponse])
_STATS = TypeAdapter(TaskStats)


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def _raise_for_status(response: httpx.Response, *, login: bool = False) -> None:
    if response.is_success:
        return

    detail = _detail(response)
    LOGGER.debug(
        "%s %s failed with %s: %s",
        response.request.method,
        response.request.url.path,
        response.status_code,
        detail,
    )
    if response.status_code == httpx.codes.UNAUTHORIZED:
        if login:
            raise AuthenticationError(detail)
        raise SessionExpiredError(detail)
    if response.status_code == httpx.codes.FORBIDDEN:
        raise AuthorizationError(detail)
    raise ApiError(response.status_code, detail)


class TaskWebClient:
    """Async client for the TaskWeb REST API.

    :param base_url: Root URL of the API
    :param timeout: Seconds before a request fails with :class:`NetworkError`
    :param token_provider: Callable returning the current access token
    :param transport: Optional httpx transport, mainly for tests
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        token_provider: Callable[[], str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token_provider = token_provider or (lambda: None)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> TaskWebClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        login: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {}
        if not login:
            token = self.token_provider()
            if not token:
                msg = "Not logged in"
                raise SessionExpiredError(msg)
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method,
                url,
                headers=headers,
                **kwargs,
            )
        except httpx.TimeoutException as e:
            msg = f"{method} {url} timed out"
            raise NetworkError(msg) from e
        except httpx.TransportError as e:
            msg = f"{method} {url} failed: {e}"
            raise NetworkError(msg) from e

        _raise_for_status(response, login=login)
        return response

    @staticmethod
    def _parse(adapter: TypeAdapter, response: httpx.Response) -> Any:
        try:
            return adapter.validate_json(response.content)
        except ValidationError as e:
            raise ApiError(response.status_code, "Malformed response body") from e

    async def login(self, username: str, password: str) -> tuple[str, User]:
        """Exchange credentials for an access token.

        :raises AuthenticationError: If the credentials are rejected
        :raises NetworkError: If the server cannot be reached in time
        """
        response = await self._request(
            "POST",
            "/auth/login",
            login=True,
            data={"username": username, "password": password},
        )
        body: LoginResponse = self._parse(_LOGIN, response)
        return body.access_token, body.user.to_user()

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout")

    async def get_account(self) -> User:
        response = await self._request("GET", "/auth/account")
        return self._parse(_USER, response).to_user()

    async def list_tasks(self) -> list[Task]:
        response = await self._request("GET", "/tasks")
        return [task.to_task() for task in self._parse(_TASKS, response)]

    async def get_task(self, task_id: int) -> Task:
        response = await self._request("GET", f"/tasks/{task_id}")
        return self._parse(_TASK, response).to_task()

    async def create_task(
        self,
        title: str,
        description: str = "",
        assigned_to_id: int | None = None,
    ) -> Task:
        response = await self._request(
            "POST",
            "/tasks",
            json={
                "title": title,
                "description": description,
                "assigned_to_id": assigned_to_id,
            },
        )
        return self._parse(_TASK, response).to_task()

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> Task:
        """Send a partial update; only the keys present are changed."""
        response = await self._request("PUT", f"/tasks/{task_id}", json=changes)
        return self._parse(_TASK, response).to_task()

    async def update_status(self, task_id: int, status: TaskStatus) -> Task:
        response = await self._request(
            "PATCH",
            f"/tasks/{task_id}/status",
            json={"status": str(status)},
        )
        return self._parse(_TASK, response).to_task()

    async def delete_task(self, task_id: int) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def list_users(self) -> list[User]:
        response = await self._request("GET", "/tasks/users")
        return [user.to_user() for user in self._parse(_USERS, response)]

    async def search_users(self, query: str) -> list[User]:
        response = await self._request(
            "GET",
            "/tasks/users/search",
            params={"query": query},
        )
        return [user.to_user() for user in self._parse(_USERS, response)]

    async def stats(self) -> TaskStats:
        response = await self._request("GET", "/tasks/stats")
        return self._parse(_STATS, response)
