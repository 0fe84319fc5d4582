"""Tests for the HTTP client against a mocked transport."""

import json
from collections.abc import Callable

import httpx
import pytest

from taskweb.client import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    NetworkError,
    SessionExpiredError,
    TaskWebClient,
)
from taskweb.common import Role, TaskStatus

BASE_URL = "http://taskweb.test"
TOKEN = "token-abc"  # noqa: S105

TASK_BODY = {
    "id": 11,
    "title": "Review report",
    "description": "",
    "status": "pending",
    "creator_id": 1,
    "assigned_to_id": 7,
    "created_at": "2024-01-01 10:00:00",
    "updated_at": "2024-01-01 10:00:00",
}


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    token: str | None = TOKEN,
) -> TaskWebClient:
    return TaskWebClient(
        BASE_URL,
        token_provider=lambda: token,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
class TestLogin:
    """Test suite for exchanging credentials."""

    async def test_login_returns_token_and_user(self) -> None:
        """Test that the login answer is parsed into a token and user."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "access_token": TOKEN,
                    "token_type": "bearer",
                    "user": {
                        "id": 2,
                        "username": "sofia",
                        "role": "Supervisor",
                        "role_id": 2,
                    },
                },
            )

        async with _client(handler, token=None) as client:
            token, user = await client.login("sofia", "secret")

        assert token == TOKEN
        assert user.role is Role.SUPERVISOR
        assert seen[0].url.path == "/auth/login"
        assert "Authorization" not in seen[0].headers
        assert b"username=sofia" in seen[0].content

    async def test_bad_credentials(self) -> None:
        """Test that a 401 on login is an authentication error."""

        def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
            return httpx.Response(401, json={"detail": "Invalid username or password"})

        async with _client(handler, token=None) as client:
            with pytest.raises(AuthenticationError, match="Invalid username"):
                await client.login("sofia", "wrong")

    async def test_unknown_role_in_answer(self) -> None:
        """Test that a role the client does not know becomes User."""

        def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
            return httpx.Response(
                200,
                json={
                    "access_token": TOKEN,
                    "user": {"id": 3, "username": "eve", "role": "Root", "role_id": 0},
                },
            )

        async with _client(handler, token=None) as client:
            _, user = await client.login("eve", "secret")
        assert user.role is Role.USER

    async def test_timeout_is_network_error(self) -> None:
        """Test that a timeout is reported once, without retrying."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            msg = "timed out"
            raise httpx.ReadTimeout(msg, request=request)

        async with _client(handler, token=None) as client:
            with pytest.raises(NetworkError):
                await client.login("sofia", "secret")
        assert calls == 1

    async def test_connection_failure_is_network_error(self) -> None:
        """Test that an unreachable server is a network error."""

        def handler(request: httpx.Request) -> httpx.Response:
            msg = "connection refused"
            raise httpx.ConnectError(msg, request=request)

        async with _client(handler, token=None) as client:
            with pytest.raises(NetworkError):
                await client.login("sofia", "secret")


@pytest.mark.asyncio
class TestAuthenticatedCalls:
    """Test suite for calls carrying the bearer token."""

    async def test_sends_bearer_token(self) -> None:
        """Test that the current token is attached to each call."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[TASK_BODY])

        async with _client(handler) as client:
            tasks = await client.list_tasks()

        assert seen[0].headers["Authorization"] == f"Bearer {TOKEN}"
        assert tasks[0].id == TASK_BODY["id"]
        assert tasks[0].status is TaskStatus.PENDING

    async def test_no_token_sends_nothing(self) -> None:
        """Test that a call without a token fails before any request."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async with _client(handler, token=None) as client:
            with pytest.raises(SessionExpiredError):
                await client.list_tasks()
        assert seen == []

    async def test_update_status_body(self) -> None:
        """Test the status change request and its parsed answer."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={**TASK_BODY, "status": "done"})

        async with _client(handler) as client:
            task = await client.update_status(11, TaskStatus.DONE)

        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/tasks/11/status"
        assert json.loads(seen[0].content) == {"status": "done"}
        assert task.status is TaskStatus.DONE

    @pytest.mark.parametrize(
        ("status_code", "error"),
        [
            (401, SessionExpiredError),
            (403, AuthorizationError),
            (404, ApiError),
            (500, ApiError),
        ],
    )
    async def test_status_mapping(self, status_code: int, error: type) -> None:
        """Test that error answers map onto client exceptions."""

        def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
            return httpx.Response(status_code, json={"detail": "nope"})

        async with _client(handler) as client:
            with pytest.raises(error):
                await client.get_task(11)

    async def test_api_error_details(self) -> None:
        """Test that an API error keeps the status code and detail."""

        def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
            return httpx.Response(404, json={"detail": "Task not found"})

        async with _client(handler) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.delete_task(99)

        assert exc_info.value.status_code == 404  # noqa: PLR2004
        assert exc_info.value.detail == "Task not found"

    async def test_malformed_body(self) -> None:
        """Test that an unparsable success answer is an API error."""

        def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
            return httpx.Response(200, json={"id": "eleven"})

        async with _client(handler) as client:
            with pytest.raises(ApiError):
                await client.get_task(11)

    async def test_search_users_query(self) -> None:
        """Test that the search term is sent as a query parameter."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[{"id": 7, "username": "ursula", "role": "User", "role_id": 3}],
            )

        async with _client(handler) as client:
            users = await client.search_users("urs")

        assert seen[0].url.params["query"] == "urs"
        assert [user.username for user in users] == ["ursula"]
