"""Client for the TaskWeb API with a persisted login session."""

from .api import TaskWebClient
from .context import ClientContext, client_session
from .exceptions import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    LoginCancelledError,
    NetworkError,
    SessionExpiredError,
    StorageError,
    TaskWebError,
)
from .gate import TaskGate, TaskStore
from .session import CredentialVerifier, Session, SessionManager, SessionState
from .storage import KeyValueStore, MemoryStore, SQLiteStore

__all__ = [
    "ApiError",
    "AuthenticationError",
    "AuthorizationError",
    "ClientContext",
    "CredentialVerifier",
    "KeyValueStore",
    "LoginCancelledError",
    "MemoryStore",
    "NetworkError",
    "SQLiteStore",
    "Session",
    "SessionExpiredError",
    "SessionManager",
    "SessionState",
    "StorageError",
    "TaskGate",
    "TaskStore",
    "TaskWebClient",
    "TaskWebError",
    "client_session",
]
