"""Configuration management for the TaskWeb server and client.

This module provides utilities for loading and validating configuration
from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from jwt.algorithms import get_default_algorithms

from taskweb.auth import SecurityManager

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_MINUTES_IN_DAY = 60 * 24
_DEFAULT_PASSWORD_MIN_LENGTH = 8
_DEFAULT_BCRYPT_ROUNDS = 12
_MIN_BCRYPT_ROUNDS = 4
_MAX_BCRYPT_ROUNDS = 31
_DEFAULT_REQUEST_TIMEOUT_SECONDS = 10


def configure_logging(app_config: AppConfig | ClientConfig) -> None:
    """Configure logging based on the application configuration.

    :param app_config: The application configuration instance
    """
    if not app_config.logging_level:
        logging.basicConfig(level=logging.INFO)
        return

    numeric_level = getattr(logging, app_config.logging_level.upper(), None)
    if not isinstance(numeric_level, int):
        LOGGER.warning("Invalid log level: %s, using INFO", app_config.logging_level)
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level)


@dataclass
class AppConfig:
    """Holds server configuration loaded from environment variables."""

    database_path: str
    logging_level: str | None
    root_path: str

    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    password_min_length: int
    bcrypt_rounds: int

    admin_username: str | None = None
    admin_password: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Initialize derived configuration attributes."""
        self.security_manager = SecurityManager(
            secret_key=self.secret_key,
            algorithm=self.algorithm,
            expire_minutes=self.access_token_expire_minutes,
            password_min_length=self.password_min_length,
            bcrypt_rounds=self.bcrypt_rounds,
        )

    @property
    def admin_credentials(self) -> tuple[str, str] | None:
        """Seed Administrator credentials, if both parts are configured."""
        if self.admin_username and self.admin_password:
            return self.admin_username, self.admin_password
        return None


@dataclass
class ClientConfig:
    """Holds client configuration loaded from environment variables."""

    api_base_url: str
    request_timeout: int
    session_store_path: str
    session_load_timeout: int | None
    logging_level: str | None = None


def get_env_str(
    var_name: str,
    default: str | None,
    value_checker: Callable[[str], bool] | None = None,
) -> str:
    """Get an environment variable as a string with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value
    :raises ValueError: If the value does not meet the constraints
    """
    value = os.getenv(var_name, default)
    if value is None:
        msg = f"Environment variable {var_name} is required"
        raise ValueError(msg)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_optional_str(var_name: str) -> str | None:
    """Get an environment variable as a string, treating empty as unset."""
    value = os.getenv(var_name)
    return value or None


def get_env_optional_int(
    var_name: str,
    default: int | None,
    value_checker: Callable[[int], bool] | None = None,
) -> int | None:
    """Get an environment variable as an integer with optional constraints.

    To indicate None, set the environment variable to an empty string.
    To indicate the default, leave the environment variable unset.
    To indicate an integer value, set the environment variable to that integer.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as an integer
    :raises ValueError: If the value does not meet the constraints or is not an integer
    """
    value_str = os.getenv(var_name)
    if value_str is None:
        return default

    if value_str == "":
        return None

    if not value_str.isnumeric():
        msg = f"Environment variable {var_name} must be an integer, got: {value_str}"
        raise ValueError(msg)

    value = int(value_str)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def get_env_int(
    var_name: str,
    default: int,
    value_checker: Callable[[int], bool] | None = None,
) -> int:
    """Get an environment variable as an integer with optional constraints.

    :param var_name: Name of the environment variable
    :param default: Default value if the variable is not set
    :param value_checker: Optional function to validate the value
    :return: The environment variable value as an integer
    :raises ValueError: If the value does not meet the constraints or is not an integer
    """
    value_str = os.getenv(var_name)
    if value_str is None or value_str == "":
        return default

    if not value_str.isnumeric():
        msg = f"Environment variable {var_name} must be an integer, got: {value_str}"
        raise ValueError(msg)

    value = int(value_str)

    if value_checker and not value_checker(value):
        msg = f"Environment variable {var_name} has invalid value: {value}"
        raise ValueError(msg)

    return value


def load_config_from_env(env_file: str | Path | None) -> AppConfig:
    """Load server configuration from environment variables.

    :param env_file: Optional path to a dotenv file loaded first
    :return: An AppConfig instance populated with environment variable values
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    return AppConfig(
        database_path=get_env_str("DATABASE_PATH", "./taskweb.db"),
        logging_level=get_env_str("LOGGING_LEVEL", "INFO"),
        root_path=get_env_str("ROOT_PATH", ""),
        secret_key=get_env_str("SECRET_KEY", os.urandom(32).hex()),
        algorithm=get_env_str(
            "ALGORITHM",
            SecurityManager.DEFAULT_JWT_ALGORITHM,
            lambda algorithm: algorithm in get_default_algorithms(),
        ),
        access_token_expire_minutes=get_env_int(
            "ACCESS_TOKEN_EXPIRE_MINUTES",
            _MINUTES_IN_DAY,  # default 1 day
            lambda minutes: minutes > 0,
        ),
        password_min_length=get_env_int(
            "PASSWORD_MIN_LENGTH",
            _DEFAULT_PASSWORD_MIN_LENGTH,
            lambda length: length > 0,
        ),
        bcrypt_rounds=get_env_int(
            "BCRYPT_ROUNDS",
            _DEFAULT_BCRYPT_ROUNDS,
            lambda rounds: _MIN_BCRYPT_ROUNDS <= rounds <= _MAX_BCRYPT_ROUNDS,
        ),
        admin_username=get_env_optional_str("ADMIN_USERNAME"),
        admin_password=get_env_optional_str("ADMIN_PASSWORD"),
    )


def load_client_config_from_env(env_file: str | Path | None) -> ClientConfig:
    """Load client configuration from environment variables.

    :param env_file: Optional path to a dotenv file loaded first
    :return: A ClientConfig instance populated with environment variable values
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    return ClientConfig(
        api_base_url=get_env_str(
            "TASKWEB_API_URL",
            "http://localhost:8000",
            lambda url: url.startswith(("http://", "https://")),
        ),
        request_timeout=get_env_int(
            "REQUEST_TIMEOUT",
            _DEFAULT_REQUEST_TIMEOUT_SECONDS,
            lambda timeout: timeout > 0,
        ),
        session_store_path=get_env_str("SESSION_STORE_PATH", "./taskweb_session.db"),
        session_load_timeout=get_env_optional_int(
            "SESSION_LOAD_TIMEOUT",
            None,  # if not set, no timeout
            lambda timeout: timeout > 0,
        ),
        logging_level=get_env_str("LOGGING_LEVEL", "INFO"),
    )
