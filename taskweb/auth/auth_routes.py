"""Authentication and authorization routes for the FastAPI application.

Provides endpoints for login, logout, and account management.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, status

from taskweb.common import Role, User

from .models import LoginResponse, UserResponse
from .queries import AuthQueries
from .security_manager import SecurityManager
from .validation import Validate

LOGGER = logging.getLogger(__name__)
LOGGER.setLevel(logging.DEBUG)


async def _login(
    auth_queries: AuthQueries,
    security_manager: SecurityManager,
    username: str,
    password: str,
) -> LoginResponse:
    user = await auth_queries.authenticate_user(username, password)

    if not user:
        LOGGER.debug("Failed login attempt for username: %s", username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    access_token = security_manager.create_access_token(user)
    LOGGER.debug("User %s logged in successfully", username)
    return LoginResponse(
        access_token=access_token,
        user=UserResponse.from_user(user),
    )


async def _create_account(
    auth_queries: AuthQueries,
    username: str,
    password: str,
    role_id: int,
    admin: User,
) -> UserResponse:
    """For creating accounts of arbitrary users.

    Only an Administrator can create new accounts.
    """
    if username == admin.username:
        LOGGER.debug(
            "Administrator %s attempted to create account with same name",
            admin.username,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot create account with same name as own",
        )

    role = Role.from_id(role_id)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role id: {role_id}",
        )

    LOGGER.debug("Creating account for user: %s with role: %s", username, role.label)
    error = await auth_queries.create_account(username, password, role)
    if error:
        LOGGER.debug(
            "Failed to create account for user: %s, error: %s",
            username,
            error,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error,
        )

    new_user = await auth_queries.get_user_by_username(username)
    if new_user is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Account was not stored",
        )
    LOGGER.debug("Account created successfully for user: %s", username)
    return UserResponse.from_user(new_user)


async def _delete_account(
    auth_queries: AuthQueries,
    username: str,
    admin: User,
) -> str:
    """For deleting accounts of arbitrary users, not self-deletion."""
    if username == admin.username:
        LOGGER.debug("Administrator %s attempted to delete own account", admin.username)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete own account",
        )
    if not await auth_queries.delete_account(username):
        LOGGER.debug("Failed to delete account for user: %s", username)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to delete account",
        )
    LOGGER.debug("Account deleted successfully for user: %s", username)
    return "Success"


async def _change_password(
    auth_queries: AuthQueries,
    new_password: str,
    user: User,
) -> str:
    error = await auth_queries.change_password(user.username, new_password)

    if error:
        LOGGER.debug(
            "Failed to change password for user: %s, error: %s",
            user.username,
            error,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error,
        )
    LOGGER.debug("Password changed successfully for user: %s", user.username)
    return "Password changed successfully"


def configure_auth_router(
    router: APIRouter,
    validate: Validate,
) -> APIRouter:
    """Configure the authentication router.

    :param router: The APIRouter to configure
    :param validate: The Validate instance holding the auth repository
    :return: The configured APIRouter
    """
    auth_queries = validate.auth_queries
    security_manager = validate.security_manager

    @router.post("/login", response_model=LoginResponse)
    async def login(
        username: Annotated[str, Form()],
        password: Annotated[str, Form()],
    ) -> LoginResponse:
        return await _login(auth_queries, security_manager, username, password)

    @router.post("/logout")
    def logout(
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> str:
        """With JWT, logout is handled client-side by discarding the token."""
        LOGGER.debug("User %s logged out", user.username)
        return "Success"

    @router.get("/account", response_model=UserResponse)
    def get_account_info(
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> UserResponse:
        return UserResponse.from_user(user)

    @router.put("/account", response_model=UserResponse)
    async def create_account_route(
        username: Annotated[str, Form()],
        password: Annotated[str, Form()],
        role_id: Annotated[int, Form()],
        admin: Annotated[User, Depends(validate.role(Role.ADMINISTRATOR))],
    ) -> UserResponse:
        return await _create_account(auth_queries, username, password, role_id, admin)

    @router.delete("/account")
    async def delete_account_route(
        username: Annotated[str, Form(...)],
        admin: Annotated[User, Depends(validate.role(Role.ADMINISTRATOR))],
    ) -> str:
        return await _delete_account(auth_queries, username, admin)

    @router.patch("/account/password")
    async def change_password_route(
        new_password: Annotated[str, Form(...)],
        user: Annotated[User, Depends(validate.jwt_token)],
    ) -> str:
        return await _change_password(auth_queries, new_password, user)

    return router
