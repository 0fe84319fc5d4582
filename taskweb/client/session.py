"""Client-side session lifecycle.

The :class:`SessionManager` owns the logged-in user and access token of one
client, keeps them in a durable :class:`~taskweb.client.storage.KeyValueStore`
and is the only place that changes them.

**States:**

- ``UNAUTHENTICATED``: no user and no token
- ``AUTHENTICATING``: a login request is in flight and nobody is logged in
- ``AUTHENTICATED``: a user and a token are held

**Ordering:**

Storage transitions are serialized by one lock. Every login, and every
clear, takes a new attempt number; a login only commits its result while
its number is still the latest. A newer login therefore supersedes an older
one, and a logout issued while a login is in flight always wins. An expiry
reported for a token that has since been replaced leaves the new session
alone.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, TypeVar

from pydantic import ValidationError

from taskweb.auth.models import UserResponse
from taskweb.common import Role, User
from taskweb.permissions import effective_role

from .exceptions import LoginCancelledError, SessionExpiredError, StorageError

if TYPE_CHECKING:
    from collections.abc import Awaitable

    from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

TOKEN_KEY = "token"
USER_KEY = "user"
SESSION_KEYS = (TOKEN_KEY, USER_KEY)

T = TypeVar("T")


class SessionState(StrEnum):
    """Lifecycle states of a client session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
    """Immutable snapshot of the client session.

    :param token: The access token, or None when logged out
    :param user: The logged-in user, or None when logged out
    """

    token: str | None = None
    user: User | None = None

    def __post_init__(self) -> None:
        if (self.token is None) != (self.user is None):
            msg = "A session holds both a token and a user, or neither"
            raise ValueError(msg)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


class CredentialVerifier(Protocol):
    """Collaborator that exchanges credentials for a token and user."""

    async def login(self, username: str, password: str) -> tuple[str, User]: ...


def encode_user(user: User) -> str:
    """Serialize a user for the session store."""
    return UserResponse.from_user(user).model_dump_json()


def decode_user(raw: str) -> User:
    """Parse a stored user record.

    :raises pydantic.ValidationError: If the record is malformed
    """
    return UserResponse.model_validate_json(raw).to_user()


class SessionManager:
    """Owns the client session and its persistence.

    :param credentials: Collaborator used by :meth:`login`
    :param store: Durable key-value store for the token and user
    """

    def __init__(self, credentials: CredentialVerifier, store: KeyValueStore) -> None:
        self._credentials = credentials
        self._store = store
        self._session = Session()
        self._lock = asyncio.Lock()
        self._attempt = 0
        self._pending_login: int | None = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user(self) -> User | None:
        return self._session.user

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def state(self) -> SessionState:
        if self._session.is_authenticated:
            return SessionState.AUTHENTICATED
        if self._pending_login is not None:
            return SessionState.AUTHENTICATING
        return SessionState.UNAUTHENTICATED

    def _has_role(self, role: Role) -> bool:
        return effective_role(self._session.user) is role

    def is_admin(self) -> bool:
        return self._has_role(Role.ADMINISTRATOR)

    def is_supervisor(self) -> bool:
        return self._has_role(Role.SUPERVISOR)

    def is_user(self) -> bool:
        return self._has_role(Role.USER)

    def _next_attempt(self) -> int:
        self._attempt += 1
        return self._attempt

    def _check_current(self, attempt: int, username: str) -> None:
        if attempt != self._attempt:
            LOGGER.info("Discarding stale login result for %s", username)
            msg = f"Login for {username} was superseded"
            raise LoginCancelledError(msg)

    def _finish_login(self, attempt: int) -> None:
        if self._pending_login == attempt:
            self._pending_login = None

    async def load_persisted(self, timeout: float | None = None) -> Session:
        """Restore the session saved by a previous process.

        A missing or malformed record, a storage failure or a timeout all leave
        the session logged out. A result is dropped if the session changed
        while it was loading.

        :param timeout: Seconds to wait for the store, None to wait indefinitely
        :return: The current session
        """
        attempt = self._attempt
        try:
            async with asyncio.timeout(timeout), self._lock:
                values = await self._store.get_many(SESSION_KEYS)
        except StorageError:
            LOGGER.warning("Could not read persisted session", exc_info=True)
            return self._session
        except TimeoutError:
            LOGGER.warning("Timed out reading persisted session after %ss", timeout)
            return self._session

        token, raw_user = values.get(TOKEN_KEY), values.get(USER_KEY)
        if token is None and raw_user is None:
            LOGGER.debug("No persisted session found")
            return self._session

        if not token or raw_user is None:
            LOGGER.warning("Ignoring incomplete persisted session")
            return self._session

        try:
            user = decode_user(raw_user)
        except ValidationError:
            LOGGER.warning("Ignoring malformed persisted user record")
            return self._session

        if attempt != self._attempt or self._session.is_authenticated:
            LOGGER.debug("Session changed while loading, keeping current session")
            return self._session

        self._session = Session(token=token, user=user)
        LOGGER.info("Restored session for user %s", user.username)
        return self._session

    async def commit(self, token: str, user: User) -> Session:
        """Persist a token and user as a pair, then hold them in memory.

        :param token: The access token
        :param user: The user the token belongs to
        :return: The new session
        :raises StorageError: If the pair could not be persisted; the session
            in memory is left unchanged
        """
        if not token:
            msg = "Cannot commit a session without a token"
            raise ValueError(msg)

        async with self._lock:
            await self._write(token, user)
        return self._session

    async def _write(self, token: str, user: User) -> None:
        await self._store.set_many({TOKEN_KEY: token, USER_KEY: encode_user(user)})
        self._session = Session(token=token, user=user)
        LOGGER.debug("Committed session for user %s", user.username)

    async def clear(self) -> None:
        """Log out: cancel pending logins and forget the session.

        Calling this while logged out is a no-op. The session in memory is
        always cleared; a storage failure is raised afterwards.

        :raises StorageError: If the persisted pair could not be removed
        """
        self._next_attempt()
        self._pending_login = None
        async with self._lock:
            try:
                await self._store.remove_many(SESSION_KEYS)
            finally:
                if self._session.is_authenticated:
                    LOGGER.info(
                        "Cleared session for user %s",
                        self._session.user.username,
                    )
                self._session = Session()

    async def login(self, username: str, password: str) -> User:
        """Exchange credentials for a session and commit it.

        Failures of the credential collaborator propagate unchanged and leave
        the held session as it was. Nothing is retried.

        :param username: The username
        :param password: The password
        :return: The logged-in user
        :raises LoginCancelledError: If a newer login or a logout happened
            while this login was in flight
        """
        attempt = self._next_attempt()
        self._pending_login = attempt
        LOGGER.debug("Login attempt %s for %s", attempt, username)

        try:
            token, user = await self._credentials.login(username, password)
        except BaseException:
            self._finish_login(attempt)
            raise

        async with self._lock:
            try:
                self._check_current(attempt, username)
                await self._write(token, user)
                # a clear() may have started while the pair was being written
                self._check_current(attempt, username)
            finally:
                self._finish_login(attempt)

        LOGGER.info("User %s logged in as %s", user.username, user.role.label)
        return user

    async def guard(self, operation: Awaitable[T]) -> T:
        """Await a downstream call, logging out if the server reports expiry.

        :param operation: The pending authenticated call
        :return: The result of the call
        :raises SessionExpiredError: After the session has been cleared, unless
            the token changed while the call was in flight
        """
        token = self._session.token
        try:
            return await operation
        except SessionExpiredError:
            if self._session.token != token:
                LOGGER.info("Ignoring expiry of a token that was already replaced")
                raise
            LOGGER.info("Session expired, clearing credentials")
            await self.clear()
            raise
