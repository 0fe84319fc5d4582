"""User account database utilities.

Using the AuthQueries class as a repository for
authentication-related queries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from taskweb.common import Role, User

if TYPE_CHECKING:
    from aiosqlite import Connection

    from .security_manager import SecurityManager

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


class AuthQueries:
    """Repository for authentication-related queries."""

    CREATE_USERS_TABLE = """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            hashed_password TEXT NOT NULL,
            role_id INTEGER NOT NULL DEFAULT 3, -- 1: administrator, 2: supervisor, 3: user
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """

    COUNT_USERS = """SELECT COUNT(*) FROM users;"""

    GET_USER_AUTH_INFO = """
        SELECT id, hashed_password, role_id FROM users WHERE username = ?;
        """

    GET_USER_WITH_USERNAME = """
        SELECT id, username, role_id FROM users WHERE username = ?;
        """

    GET_USER_WITH_ID = """
        SELECT id, username, role_id FROM users WHERE id = ?;
        """

    LIST_USERS = """
        SELECT id, username, role_id FROM users ORDER BY username;
        """

    SEARCH_USERS = """
        SELECT id, username, role_id FROM users
        WHERE username LIKE ? ESCAPE '\\'
        ORDER BY username
        LIMIT ?;
        """

    ADD_USER = """
        INSERT INTO users (username, hashed_password, role_id) VALUES (?, ?, ?);
        """

    SEED_ADMIN = """
        INSERT OR IGNORE INTO users (username, hashed_password, role_id)
        VALUES (?, ?, ?);
        """

    UPDATE_USER_PASSWORD = """
        UPDATE users SET hashed_password = ? WHERE username = ?;
        """  # noqa: S105

    DELETE_USER = """
        DELETE FROM users WHERE username = ?;
        """

    def __init__(
        self,
        connection: Connection,
        security_manager: SecurityManager,
    ) -> None:
        """Create an AuthQueries instance.

        :param connection: Database connection
        :param security_manager: Security configuration manager
        """
        self.connection = connection
        self.security_manager = security_manager

    @classmethod
    async def create(
        cls,
        db_path: str,
        security_manager: SecurityManager,
    ) -> AuthQueries:
        """Create an AuthQueries instance with an aiosqlite connection.

        :param db_path: Path to the SQLite database file
        :param security_manager: Security configuration manager
        :return: Configured AuthQueries instance
        """
        connection = await aiosqlite.connect(db_path)
        return cls(connection, security_manager)

    async def close(self) -> None:
        """Close the database connection."""
        await self.connection.close()

    @staticmethod
    def _row_to_user(row: tuple) -> User:
        user_id, username, role_id = row
        return User(id=user_id, username=username, role=Role.resolve(role_id=role_id))

    async def initialize_tables(
        self,
        admin_credentials: tuple[str, str] | None = None,
    ) -> None:
        """Create the users table if it does not exist.

        This method should be called during application startup.

        :param admin_credentials: Optional (username, password) tuple for seeding
            the first Administrator. If the database has no users and credentials
            are provided, the account is created automatically. If no credentials
            are provided and the database has no users, a warning is logged.
        """
        try:
            await self.connection.execute("PRAGMA foreign_keys = ON;")
            await self.connection.execute(AuthQueries.CREATE_USERS_TABLE)

            if await self.count_users() != 0:
                await self.connection.commit()
                return

            if admin_credentials is None:
                LOGGER.warning(
                    "No users found in database and no administrator credentials "
                    "provided. The server will start without any accounts.",
                )
                await self.connection.commit()
                return

            username, password = admin_credentials
            cursor = await self.connection.execute(
                AuthQueries.SEED_ADMIN,
                (
                    username,
                    self.security_manager.hash_password(password),
                    int(Role.ADMINISTRATOR),
                ),
            )
            if cursor.rowcount == 0:
                LOGGER.info("Administrator '%s' was already created", username)
            else:
                LOGGER.info(
                    "No users found in database; created administrator account "
                    "with username '%s'",
                    username,
                )

            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error initializing users table")
            raise

    async def count_users(self) -> int:
        """Return the number of users in the users table.

        :return: Number of users
        """
        result = await self.connection.execute(AuthQueries.COUNT_USERS)
        row = await result.fetchone()
        return row[0] if row else 0

    async def authenticate_user(self, username: str, password: str) -> User | None:
        """Verify a username and password against the stored hash.

        :param username: The username of the user
        :param password: The plaintext password to verify
        :return: The User object if authentication is successful, None otherwise
        """
        result = await self.connection.execute(
            AuthQueries.GET_USER_AUTH_INFO,
            (username,),
        )
        row = await result.fetchone()
        if row is None:
            return None

        user_id, stored_hashed_password, role_id = row
        if not self.security_manager.check_password(password, stored_hashed_password):
            return None
        return User(id=user_id, username=username, role=Role.resolve(role_id=role_id))

    async def get_user_by_username(self, username: str) -> User | None:
        """Get a user by username.

        :param username: The username to look up
        :return: The User object, or None if no such user exists
        """
        result = await self.connection.execute(
            AuthQueries.GET_USER_WITH_USERNAME,
            (username,),
        )
        row = await result.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_id(self, user_id: int) -> User | None:
        """Get a user by id.

        :param user_id: The user id to look up
        :return: The User object, or None if no such user exists
        """
        result = await self.connection.execute(AuthQueries.GET_USER_WITH_ID, (user_id,))
        row = await result.fetchone()
        return self._row_to_user(row) if row else None

    async def list_users(self) -> list[User]:
        """List every user ordered by username."""
        result = await self.connection.execute(AuthQueries.LIST_USERS)
        rows = await result.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def search_users(self, query: str, limit: int = 20) -> list[User]:
        """Find users whose username contains the query.

        :param query: Substring to look for
        :param limit: Maximum number of users to return
        :return: Matching users ordered by username
        """
        escaped = (
            query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        result = await self.connection.execute(
            AuthQueries.SEARCH_USERS,
            (f"%{escaped}%", limit),
        )
        rows = await result.fetchall()
        return [self._row_to_user(row) for row in rows]

    async def create_account(
        self,
        username: str,
        password: str,
        role: Role,
    ) -> str | None:
        """Create a new user account with the given username, password, and role.

        :param username: The desired username
        :param password: The desired password
        :param role: The role of the new user
        :return: An error message if creation failed, None otherwise
        """
        error = self.security_manager.validate_password(password)
        if error:
            return error

        try:
            if await self.get_user_by_username(username) is not None:
                return "Username already exists"

            await self.connection.execute(
                AuthQueries.ADD_USER,
                (username, self.security_manager.hash_password(password), int(role)),
            )
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error creating account for %s", username)
            return "Failed to create account"
        return None

    async def delete_account(self, username: str) -> int:
        """Delete the user account with the given username.

        :param username: The username of the account to delete
        :return: Number of rows deleted
        """
        try:
            result = await self.connection.execute(AuthQueries.DELETE_USER, (username,))
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error deleting account %s", username)
            return 0
        else:
            return result.rowcount if result else 0

    async def change_password(self, username: str, new_password: str) -> str | None:
        """Change the password for the given username.

        :param username: The username to change the password for
        :param new_password: The new password
        :return: An error message if the password change failed, None otherwise
        """
        error = self.security_manager.validate_password(new_password)
        if error:
            return error

        try:
            if await self.get_user_by_username(username) is None:
                return "Username does not exist"

            await self.connection.execute(
                AuthQueries.UPDATE_USER_PASSWORD,
                (self.security_manager.hash_password(new_password), username),
            )
            await self.connection.commit()
        except Exception:
            await self.connection.rollback()
            LOGGER.exception("Error changing password for %s", username)
            return "Failed to change password"
        return None
