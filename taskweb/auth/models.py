"""Models for auth-related responses."""

from __future__ import annotations

from pydantic import BaseModel

from taskweb.common import Role, User


class UserResponse(BaseModel):
    """Data structure representing a user on the wire.

    :param id: The id of the user
    :param username: The username of the user
    :param role: The role name of the user
    :param role_id: The numeric id of the role
    """

    id: int
    username: str
    role: str
    role_id: int

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        """Create UserResponse from User.

        :param user: User instance
        :return: UserResponse instance
        """
        return cls(
            id=user.id,
            username=user.username,
            role=user.role.label,
            role_id=user.role_id,
        )

    def to_user(self) -> User:
        """Convert back to a User, resolving the role fail-safe."""
        return User(
            id=self.id,
            username=self.username,
            role=Role.resolve(self.role, self.role_id),
        )


class LoginResponse(BaseModel):
    """Response model for login requests.

    :param access_token: The JWT access token
    :param token_type: Always "bearer"
    :param user: The authenticated user information
    """

    access_token: str
    token_type: str = "bearer"
    user: UserResponse
