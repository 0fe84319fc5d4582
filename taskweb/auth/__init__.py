"""All authentication-related modules and routes."""

from .auth_routes import configure_auth_router
from .models import LoginResponse, UserResponse
from .queries import AuthQueries
from .security_manager import SecurityManager
from .validation import Validate

__all__ = [
    "AuthQueries",
    "LoginResponse",
    "SecurityManager",
    "UserResponse",
    "Validate",
    "configure_auth_router",
]
