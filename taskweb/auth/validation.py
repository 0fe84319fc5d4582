"""Bearer token and role checks used as FastAPI dependencies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskweb.common import Role, User

if TYPE_CHECKING:
    from collections.abc import Callable

    from .queries import AuthQueries

bearer_scheme = HTTPBearer(auto_error=False)

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


class Validate:
    """Dependency factory bound to the user repository and its security settings."""

    def __init__(self, auth_queries: AuthQueries) -> None:
        """Bind the dependencies to a repository.

        :param auth_queries: Database connector, also carrying the security manager
        """
        self.auth_queries = auth_queries
        self.security_manager = auth_queries.security_manager

    def jwt_token(
        self,
        credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
    ) -> User:
        """Resolve the caller from the bearer token, or answer 401."""
        if credentials is None:
            LOGGER.debug("Request without bearer credentials")
            raise _unauthorized("Not authenticated")

        user = self.security_manager.verify_token(credentials.credentials)

        if not user:
            LOGGER.debug("JWT token validation failed")
            raise _unauthorized("Could not validate credentials")

        LOGGER.debug("Authenticated request from %s", user.username)
        return user

    def role(self, required_role: Role) -> Callable[..., User]:
        """Build a dependency admitting callers at least as privileged as a role."""

        def validator(user: User = Depends(self.jwt_token)) -> User:  # noqa: B008
            if not user.role.check_permission(required_role):
                LOGGER.debug(
                    "%s failed the %s role check",
                    user.username,
                    required_role.label,
                )
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Forbidden",
                )
            LOGGER.debug(
                "%s passed the %s role check",
                user.username,
                required_role.label,
            )
            return user

        return validator
