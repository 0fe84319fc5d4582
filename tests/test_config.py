"""Tests for configuration loading."""

import logging
from pathlib import Path

import pytest

from taskweb.config import (
    AppConfig,
    configure_logging,
    get_env_int,
    get_env_optional_int,
    load_client_config_from_env,
    load_config_from_env,
)

SERVER_VARS = (
    "DATABASE_PATH",
    "LOGGING_LEVEL",
    "ROOT_PATH",
    "SECRET_KEY",
    "ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "PASSWORD_MIN_LENGTH",
    "BCRYPT_ROUNDS",
    "ADMIN_USERNAME",
    "ADMIN_PASSWORD",
)
CLIENT_VARS = (
    "TASKWEB_API_URL",
    "REQUEST_TIMEOUT",
    "SESSION_STORE_PATH",
    "SESSION_LOAD_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every configuration variable, restoring them after the test.

    Setting first makes monkeypatch undo values a dotenv file loads later.
    """
    for name in (*SERVER_VARS, *CLIENT_VARS, "TEST_INT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_server_defaults() -> None:
    """Test the defaults of the server configuration."""
    config = load_config_from_env(None)

    assert config.database_path == "./taskweb.db"
    assert config.algorithm == "HS512"
    assert config.access_token_expire_minutes == 60 * 24
    assert config.bcrypt_rounds == 12  # noqa: PLR2004
    assert config.admin_credentials is None
    assert config.security_manager.algorithm == "HS512"


def test_server_env_file(tmp_path: Path) -> None:
    """Test that values are read from a dotenv file."""
    env_file = tmp_path / ".env"
    env_file.write_text(
        "DATABASE_PATH=/data/tasks.db\n"
        "BCRYPT_ROUNDS=4\n"
        "ADMIN_USERNAME=root\n"
        "ADMIN_PASSWORD=root-password\n",
    )

    config = load_config_from_env(env_file)

    assert config.database_path == "/data/tasks.db"
    assert config.security_manager.bcrypt_rounds == 4  # noqa: PLR2004
    assert config.admin_credentials == ("root", "root-password")
    assert "root-password" not in repr(config)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("ALGORITHM", "ROT13"),
        ("BCRYPT_ROUNDS", "3"),
        ("ACCESS_TOKEN_EXPIRE_MINUTES", "0"),
        ("PASSWORD_MIN_LENGTH", "eight"),
    ],
)
def test_invalid_server_values(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
) -> None:
    """Test that invalid values are rejected at startup."""
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=name):
        load_config_from_env(None)


def test_client_defaults_and_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test the client configuration."""
    config = load_client_config_from_env(None)
    assert config.api_base_url == "http://localhost:8000"
    assert config.request_timeout == 10  # noqa: PLR2004
    assert config.session_load_timeout is None

    monkeypatch.setenv("TASKWEB_API_URL", "https://tasks.example.com")
    monkeypatch.setenv("SESSION_LOAD_TIMEOUT", "3")
    config = load_client_config_from_env(None)
    assert config.api_base_url == "https://tasks.example.com"
    assert config.session_load_timeout == 3  # noqa: PLR2004

    monkeypatch.setenv("TASKWEB_API_URL", "ftp://tasks.example.com")
    with pytest.raises(ValueError, match="TASKWEB_API_URL"):
        load_client_config_from_env(None)


def test_env_int_helpers(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test unset, empty and set integer variables."""
    assert get_env_int("TEST_INT", 5) == 5  # noqa: PLR2004
    assert get_env_optional_int("TEST_INT", 5) == 5  # noqa: PLR2004

    monkeypatch.setenv("TEST_INT", "")
    assert get_env_int("TEST_INT", 5) == 5  # noqa: PLR2004
    assert get_env_optional_int("TEST_INT", 5) is None

    monkeypatch.setenv("TEST_INT", "7")
    assert get_env_int("TEST_INT", 5) == 7  # noqa: PLR2004


def test_configure_logging_invalid_level(caplog: pytest.LogCaptureFixture) -> None:
    """Test that an unknown level falls back with a warning."""
    config = AppConfig(
        database_path="unused.db",
        logging_level="LOUD",
        root_path="",
        secret_key="s" * 64,
        algorithm="HS512",
        access_token_expire_minutes=5,
        password_min_length=8,
        bcrypt_rounds=4,
    )
    with caplog.at_level(logging.WARNING):
        configure_logging(config)
    assert "Invalid log level" in caplog.text
