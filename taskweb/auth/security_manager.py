"""Password hashing and JWT utility functions.

Includes password requirement checks, bcrypt hashing, and JWT token creation
and verification.
"""

from __future__ import annotations

import getpass
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from bcrypt import checkpw, gensalt, hashpw

from taskweb.common import Role, User

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)

_BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass
class SecurityManager:
    """Manager for security configurations and validations.

    :param str secret_key: Secret key for JWT signing (generated if not provided)
    :param str algorithm: JWT signing algorithm
    :param int expire_minutes: Token expiration time in minutes
    :param int password_min_length: Minimum password length
    :param int bcrypt_rounds: bcrypt cost factor
    """

    DEFAULT_JWT_ALGORITHM = "HS512"
    DEFAULT_TOKEN_EXPIRE_MINUTES = 60 * 24
    DEFAULT_PASSWORD_MIN_LENGTH = 8
    DEFAULT_BCRYPT_ROUNDS = 12
    MINIMUM_JWT_SECRET_KEY_LENGTH = 32

    secret_key: str | None = None
    algorithm: str = DEFAULT_JWT_ALGORITHM
    expire_minutes: int = DEFAULT_TOKEN_EXPIRE_MINUTES
    password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    def __post_init__(self) -> None:
        """Generate secret key if not provided."""
        if (
            self.secret_key is None
            or len(self.secret_key) < self.MINIMUM_JWT_SECRET_KEY_LENGTH
        ):
            self.secret_key = os.urandom(64).hex()

    def validate_password(self, password: str) -> str | None:
        """Validate password against configured requirements.

        :param str password: The password to validate
        :return: An error message if the password does not meet requirements,
        None otherwise
        """
        if len(password) < self.password_min_length:
            return (
                f"Password must be at least {self.password_min_length} characters long"
            )

        if len(password.encode()) > _BCRYPT_MAX_PASSWORD_BYTES:
            return f"Password must be at most {_BCRYPT_MAX_PASSWORD_BYTES} bytes long"

        return None

    def hash_password(self, password: str) -> str:
        """Hash a password with a fresh bcrypt salt.

        :param password: The plaintext password
        :return: The bcrypt hash as text
        """
        return hashpw(password.encode(), gensalt(rounds=self.bcrypt_rounds)).decode()

    def check_password(self, password: str, hashed_password: str | bytes) -> bool:
        """Check a plaintext password against a stored bcrypt hash."""
        if isinstance(hashed_password, str):
            hashed_password = hashed_password.encode()
        try:
            return checkpw(password.encode(), hashed_password)
        except ValueError:
            LOGGER.debug("Password could not be checked against stored hash")
            return False

    def prompt_password(self, account: str = "the") -> str:
        """Prompt in CLI until a valid password is entered twice.

        :param account: Account description used in the prompts
        :return: The confirmed password
        """
        password = None
        while not password:
            password = getpass.getpass(f"Please enter {account} password: ")
            error = self.validate_password(password)
            if error:
                LOGGER.error(error)
                password = None
                continue
            password_confirm = getpass.getpass(f"Please re-enter {account} password: ")
            if password != password_confirm:
                LOGGER.error("Passwords do not match. Please try again.")
                password = None
                continue
        return password

    def prompt_admin_account(self) -> tuple[str, str]:
        """Prompt for the first Administrator account in CLI.

        :return: A tuple of (username, password)
        """
        username = input("Please enter the administrator username: ")
        return username, self.prompt_password("the administrator")

    def create_access_token(self, user: User) -> str:
        """Create a new JWT access token for the user.

        :param User user: The User object for whom to create the token
        :return: A JWT access token as a string
        """
        now = datetime.now(UTC)
        expire = now + timedelta(minutes=self.expire_minutes)

        payload = {
            "sub": user.username,
            "uid": user.id,
            "role": user.role_id,
            "exp": expire,
            "iat": now,
            "type": "access_token",
        }

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> User | None:
        """Verify and decode a JWT token, returning the user.

        :param token: The JWT token string to verify
        :return: The User object if the token is valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except jwt.ExpiredSignatureError:
            LOGGER.debug("Rejected expired token")
            return None
        except jwt.InvalidTokenError:
            return None

        if payload.get("type") != "access_token":
            return None

        username = payload.get("sub")
        user_id = payload.get("uid")

        if not isinstance(username, str) or not isinstance(user_id, int):
            return None

        return User(
            id=user_id,
            username=username,
            role=Role.resolve(role_id=payload.get("role")),
        )
