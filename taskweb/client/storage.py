"""Durable key-value stores for the client session.

The session is written as two keys that must never be observed half
applied, so every store offers ``set_many`` and ``remove_many`` that apply
all keys or none.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Protocol

import aiosqlite

from .exceptions import StorageError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from aiosqlite import Connection

LOGGER = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Interface of the durable storage used by the session manager."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]: ...

    async def set_many(self, items: Mapping[str, str]) -> None: ...

    async def remove_many(self, keys: Iterable[str]) -> None: ...


class MemoryStore:
    """Process-local store, for tests and short-lived clients."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]:
        return {key: self.data.get(key) for key in keys}

    async def set_many(self, items: Mapping[str, str]) -> None:
        self.data.update(items)

    async def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)


class SQLiteStore:
    """Store backed by a single SQLite table.

    Multi-key writes run in one transaction. Driver errors are raised as
    :class:`StorageError`.
    """

    CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS session_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """

    GET_VALUE = """
        SELECT value FROM session_store WHERE key = ?;
        """

    UPSERT_VALUE = """
        INSERT INTO session_store (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value;
        """

    DELETE_VALUE = """
        DELETE FROM session_store WHERE key = ?;
        """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @classmethod
    async def create(cls, db_path: str) -> SQLiteStore:
        """Open the database file and make sure the table exists.

        :param db_path: Path to the SQLite database file
        :return: Ready to use store
        :raises StorageError: If the database cannot be opened
        """
        try:
            connection = await aiosqlite.connect(db_path)
            await connection.execute(SQLiteStore.CREATE_TABLE)
            await connection.commit()
        except (aiosqlite.Error, OSError) as e:
            msg = f"Cannot open session store at {db_path}"
            raise StorageError(msg) from e
        LOGGER.debug("Session store opened at %s", db_path)
        return cls(connection)

    async def close(self) -> None:
        """Close the database connection."""
        await self.connection.close()

    async def get(self, key: str) -> str | None:
        return (await self.get_many([key]))[key]

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def remove(self, key: str) -> None:
        await self.remove_many([key])

    async def get_many(self, keys: Iterable[str]) -> dict[str, str | None]:
        values: dict[str, str | None] = {}
        try:
            for key in keys:
                result = await self.connection.execute(SQLiteStore.GET_VALUE, (key,))
                row = await result.fetchone()
                values[key] = row[0] if row else None
        except (aiosqlite.Error, ValueError) as e:
            msg = "Cannot read session store"
            raise StorageError(msg) from e
        return values

    async def set_many(self, items: Mapping[str, str]) -> None:
        await self._write(SQLiteStore.UPSERT_VALUE, list(items.items()))

    async def remove_many(self, keys: Iterable[str]) -> None:
        await self._write(SQLiteStore.DELETE_VALUE, [(key,) for key in keys])

    async def _write(self, statement: str, rows: list[tuple]) -> None:
        try:
            await self.connection.executemany(statement, rows)
            await self.connection.commit()
        except (aiosqlite.Error, ValueError) as e:
            with suppress(aiosqlite.Error, ValueError):
                await self.connection.rollback()
            msg = "Cannot write session store"
            raise StorageError(msg) from e
