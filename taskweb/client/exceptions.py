"""Custom exceptions for the TaskWeb client."""


class TaskWebError(Exception):
    """Base class for every client-side error."""


class AuthenticationError(TaskWebError):
    """Raised when the server rejects a username and password."""


class AuthorizationError(TaskWebError):
    """Raised when an action is forbidden for the current user.

    Raised locally before any request when the permission rules deny the
    action, and for a 403 answer from the server.
    """


class SessionExpiredError(TaskWebError):
    """Raised when an authenticated call is rejected for a missing or invalid token."""


class StorageError(TaskWebError):
    """Raised when the durable session store cannot be read or written."""


class NetworkError(TaskWebError):
    """Raised when a request fails in transport, including timeouts."""


class LoginCancelledError(TaskWebError):
    """Raised when a login result is discarded by a newer login or a logout."""


class ApiError(TaskWebError):
    """Raised for any other unsuccessful server answer."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
