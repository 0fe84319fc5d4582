"""Shared fixtures for users, tasks, security settings and the application."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from taskweb.app import configure_fastapi_app
from taskweb.auth import SecurityManager
from taskweb.common import Role, Task, TaskStatus, User
from taskweb.config import AppConfig

TEST_SECRET_KEY = "k" * 64  # noqa: S105
TEST_BCRYPT_ROUNDS = 4
ADMIN_PASSWORD = "admin-password"  # noqa: S105
BASE_URL = "http://taskweb.test"

LoginFactory = Callable[[str, str], Awaitable[dict[str, str]]]
AccountFactory = Callable[[str, Role], Awaitable[dict]]


@pytest.fixture
def admin() -> User:
    """Create the administrator user."""
    return User(id=1, username="admin", role=Role.ADMINISTRATOR)


@pytest.fixture
def supervisor() -> User:
    """Create a supervisor user."""
    return User(id=2, username="sofia", role=Role.SUPERVISOR)


@pytest.fixture
def regular_user() -> User:
    """Create a user with the least privileged role."""
    return User(id=7, username="ursula", role=Role.USER)


@pytest.fixture
def other_user() -> User:
    """Create a second user with the least privileged role."""
    return User(id=8, username="otto", role=Role.USER)


@pytest.fixture
def own_task(regular_user: User) -> Task:
    """Create a task created by the regular user and assigned to nobody."""
    return Task(
        id=10,
        title="Write report",
        status=TaskStatus.PENDING,
        creator_id=regular_user.id,
    )


@pytest.fixture
def assigned_task(regular_user: User, admin: User) -> Task:
    """Create a task created by the admin and assigned to the regular user."""
    return Task(
        id=11,
        title="Review report",
        status=TaskStatus.PENDING,
        creator_id=admin.id,
        assigned_to_id=regular_user.id,
    )


@pytest.fixture
def security_manager() -> SecurityManager:
    """Create a security manager with a fixed key and cheap hashing."""
    return SecurityManager(
        secret_key=TEST_SECRET_KEY,
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Create a server configuration over a temporary database."""
    return AppConfig(
        database_path=str(tmp_path / "taskweb.db"),
        logging_level=None,
        root_path="",
        secret_key=TEST_SECRET_KEY,
        algorithm=SecurityManager.DEFAULT_JWT_ALGORITHM,
        access_token_expire_minutes=5,
        password_min_length=SecurityManager.DEFAULT_PASSWORD_MIN_LENGTH,
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        admin_username="admin",
        admin_password=ADMIN_PASSWORD,
    )


@pytest_asyncio.fixture
async def app(app_config: AppConfig) -> AsyncGenerator[FastAPI, None]:
    """Create the application with its lifespan entered."""
    application = configure_fastapi_app(app_config)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def http(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create a raw HTTP client talking to the application in process."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url=BASE_URL,
    ) as client:
        yield client


@pytest.fixture
def login(http: httpx.AsyncClient) -> LoginFactory:
    """Return a helper logging in and building bearer headers."""

    async def _login(username: str, password: str) -> dict[str, str]:
        response = await http.post(
            "/auth/login",
            data={"username": username, "password": password},
        )
        assert response.status_code == 200, response.text  # noqa: PLR2004
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
def create_account(http: httpx.AsyncClient, login: LoginFactory) -> AccountFactory:
    """Return a helper creating an account as the seeded administrator.

    Every account gets the password ``"<username>-password"``.
    """

    async def _create(username: str, role: Role) -> dict:
        headers = await login("admin", ADMIN_PASSWORD)
        response = await http.put(
            "/auth/account",
            data={
                "username": username,
                "password": f"{username}-password",
                "role_id": str(int(role)),
            },
            headers=headers,
        )
        assert response.status_code == 200, response.text  # noqa: PLR2004
        return response.json()

    return _create
