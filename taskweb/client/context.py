"""Wiring of the client pieces into one ready to use context."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .api import TaskWebClient
from .gate import TaskGate
from .session import SessionManager
from .storage import SQLiteStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from taskweb.config import ClientConfig

    from .storage import KeyValueStore

LOGGER = logging.getLogger(__name__)


@dataclass
class ClientContext:
    """The API client, session manager and task gate of one client."""

    api: TaskWebClient
    session: SessionManager
    gate: TaskGate


@asynccontextmanager
async def client_session(
    config: ClientConfig,
    *,
    store: KeyValueStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncGenerator[ClientContext, None]:
    """Open a client, restoring any session persisted by an earlier run.

    :param config: Client configuration
    :param store: Session store to use instead of the configured SQLite file
    :param transport: Optional httpx transport, mainly for tests
    :return: The wired client context
    """
    sqlite_store = None
    if store is None:
        sqlite_store = await SQLiteStore.create(config.session_store_path)
        store = sqlite_store

    api = TaskWebClient(
        config.api_base_url,
        timeout=config.request_timeout,
        transport=transport,
    )
    session = SessionManager(api, store)
    api.token_provider = lambda: session.token

    try:
        await session.load_persisted(timeout=config.session_load_timeout)
        LOGGER.debug("Client started in state %s", session.state)
        yield ClientContext(api=api, session=session, gate=TaskGate(session, api))
    finally:
        await api.aclose()
        if sqlite_store is not None:
            await sqlite_store.close()
