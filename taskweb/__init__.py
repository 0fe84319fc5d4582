"""TaskWeb task management API and client package."""

from .app import configure_fastapi_app, create_app
from .config import (
    AppConfig,
    ClientConfig,
    load_client_config_from_env,
    load_config_from_env,
)

__all__ = [
    "AppConfig",
    "ClientConfig",
    "configure_fastapi_app",
    "create_app",
    "load_client_config_from_env",
    "load_config_from_env",
]
