"""Tests for the user account repository."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from taskweb.auth import AuthQueries, SecurityManager
from taskweb.common import Role

ADMIN_PASSWORD = "admin-password"  # noqa: S105
USER_PASSWORD = "user-password"  # noqa: S105


@pytest_asyncio.fixture
async def auth_queries(
    tmp_path: Path,
    security_manager: SecurityManager,
) -> AsyncGenerator[AuthQueries, None]:
    """Create a repository over a fresh database with a seeded administrator."""
    queries = await AuthQueries.create(str(tmp_path / "auth.db"), security_manager)
    await queries.initialize_tables(("admin", ADMIN_PASSWORD))
    yield queries
    await queries.close()


@pytest.mark.asyncio
class TestInitializeTables:
    """Test suite for table creation and administrator seeding."""

    async def test_seeds_administrator(self, auth_queries: AuthQueries) -> None:
        """Test that an empty database gets the configured administrator."""
        admin = await auth_queries.get_user_by_username("admin")
        assert admin is not None
        assert admin.role is Role.ADMINISTRATOR
        assert await auth_queries.count_users() == 1

    async def test_does_not_seed_twice(self, auth_queries: AuthQueries) -> None:
        """Test that seeding only happens while the table is empty."""
        await auth_queries.initialize_tables(("second", ADMIN_PASSWORD))
        assert await auth_queries.count_users() == 1
        assert await auth_queries.get_user_by_username("second") is None

    async def test_without_credentials(
        self,
        tmp_path: Path,
        security_manager: SecurityManager,
    ) -> None:
        """Test that the server may start with no accounts."""
        queries = await AuthQueries.create(str(tmp_path / "empty.db"), security_manager)
        try:
            await queries.initialize_tables()
            assert await queries.count_users() == 0
        finally:
            await queries.close()

    async def test_seed_after_another_process_seeded(
        self,
        tmp_path: Path,
        security_manager: SecurityManager,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that a worker losing the seeding race starts normally."""
        database = str(tmp_path / "shared.db")
        first = await AuthQueries.create(database, security_manager)
        second = await AuthQueries.create(database, security_manager)
        try:
            await first.initialize_tables(("admin", ADMIN_PASSWORD))
            # the second worker counted the users before the first one committed
            monkeypatch.setattr(second, "count_users", AsyncMock(return_value=0))

            await second.initialize_tables(("admin", ADMIN_PASSWORD))

            assert await first.count_users() == 1
            admin = await first.get_user_by_username("admin")
            assert admin is not None
            assert admin.role is Role.ADMINISTRATOR
        finally:
            await second.close()
            await first.close()


@pytest.mark.asyncio
class TestAccounts:
    """Test suite for account management."""

    async def test_authenticate(self, auth_queries: AuthQueries) -> None:
        """Test authentication with good and bad credentials."""
        user = await auth_queries.authenticate_user("admin", ADMIN_PASSWORD)
        assert user is not None
        assert user.username == "admin"
        assert await auth_queries.authenticate_user("admin", "wrong-password") is None
        assert await auth_queries.authenticate_user("nobody", ADMIN_PASSWORD) is None

    async def test_create_account(self, auth_queries: AuthQueries) -> None:
        """Test that a new account stores its role."""
        error = await auth_queries.create_account("sofia", USER_PASSWORD, Role.SUPERVISOR)
        assert error is None

        user = await auth_queries.get_user_by_username("sofia")
        assert user is not None
        assert user.role is Role.SUPERVISOR
        assert await auth_queries.get_user_by_id(user.id) == user

    async def test_create_duplicate_account(self, auth_queries: AuthQueries) -> None:
        """Test that usernames are unique."""
        error = await auth_queries.create_account("admin", USER_PASSWORD, Role.USER)
        assert error == "Username already exists"

    async def test_create_account_with_weak_password(
        self,
        auth_queries: AuthQueries,
    ) -> None:
        """Test that the password requirements apply to new accounts."""
        error = await auth_queries.create_account("ursula", "short", Role.USER)
        assert error is not None
        assert await auth_queries.get_user_by_username("ursula") is None

    async def test_delete_account(self, auth_queries: AuthQueries) -> None:
        """Test deleting existing and missing accounts."""
        await auth_queries.create_account("ursula", USER_PASSWORD, Role.USER)
        assert await auth_queries.delete_account("ursula") == 1
        assert await auth_queries.delete_account("ursula") == 0

    async def test_change_password(self, auth_queries: AuthQueries) -> None:
        """Test that the new password replaces the old one."""
        assert await auth_queries.change_password("admin", "brand-new-password") is None
        assert await auth_queries.authenticate_user("admin", ADMIN_PASSWORD) is None
        assert await auth_queries.authenticate_user("admin", "brand-new-password")

    async def test_change_password_of_missing_user(
        self,
        auth_queries: AuthQueries,
    ) -> None:
        """Test that a missing user is reported."""
        error = await auth_queries.change_password("nobody", "brand-new-password")
        assert error == "Username does not exist"

    async def test_unknown_stored_role_is_user(self, auth_queries: AuthQueries) -> None:
        """Test that a corrupted role id in the database is read as User."""
        await auth_queries.create_account("mallory", USER_PASSWORD, Role.USER)
        await auth_queries.connection.execute(
            "UPDATE users SET role_id = 42 WHERE username = ?",
            ("mallory",),
        )
        await auth_queries.connection.commit()

        user = await auth_queries.get_user_by_username("mallory")
        assert user is not None
        assert user.role is Role.USER


@pytest.mark.asyncio
class TestUserDirectory:
    """Test suite for listing and searching users."""

    async def test_list_users_sorted(self, auth_queries: AuthQueries) -> None:
        """Test that users are listed by username."""
        await auth_queries.create_account("zoe", USER_PASSWORD, Role.USER)
        await auth_queries.create_account("bob", USER_PASSWORD, Role.USER)
        names = [user.username for user in await auth_queries.list_users()]
        assert names == ["admin", "bob", "zoe"]

    async def test_search_users(self, auth_queries: AuthQueries) -> None:
        """Test substring search with a limit."""
        for name in ("anna", "hannah", "bob"):
            await auth_queries.create_account(name, USER_PASSWORD, Role.USER)

        found = await auth_queries.search_users("ann")
        assert [user.username for user in found] == ["anna", "hannah"]
        assert len(await auth_queries.search_users("a", limit=1)) == 1

    async def test_search_escapes_wildcards(self, auth_queries: AuthQueries) -> None:
        """Test that LIKE wildcards in the query match literally."""
        await auth_queries.create_account("a_b", USER_PASSWORD, Role.USER)
        await auth_queries.create_account("axb", USER_PASSWORD, Role.USER)

        assert [user.username for user in await auth_queries.search_users("_")] == [
            "a_b",
        ]
        assert await auth_queries.search_users("%") == []
