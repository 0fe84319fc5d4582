"""FastAPI application factory for the TaskWeb API."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from aiosqlite import connect as aiosqlite_connect
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskweb.auth import AuthQueries, Validate, configure_auth_router
from taskweb.config import configure_logging, load_config_from_env
from taskweb.tasks import TaskQueries, configure_task_router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from taskweb.config import AppConfig

LOGGER = logging.getLogger(__name__)


def _prepare_database_path(database_path: str) -> None:
    db_file = Path(database_path)
    if not db_file.parent.exists():
        db_file.parent.mkdir(parents=True, exist_ok=True)
        LOGGER.info("Created database directory %s", db_file.parent)
    if not db_file.exists():
        LOGGER.info("No database at %s yet, a new one will be created", db_file)


def configure_fastapi_app(config: AppConfig) -> FastAPI:
    """Build the TaskWeb application for a server configuration.

    :param config: Server configuration
    :return: The FastAPI application, routers are added on startup
    """
    _prepare_database_path(config.database_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[Any, Any]:
        """Open the database, create the tables and wire the routers."""
        LOGGER.info("TaskWeb API is starting")

        async with aiosqlite_connect(config.database_path) as db_connection:
            auth_queries = AuthQueries(db_connection, config.security_manager)
            await auth_queries.initialize_tables(config.admin_credentials)

            task_queries = TaskQueries(db_connection)
            await task_queries.initialize_tables()

            validate = Validate(auth_queries)

            auth_router = configure_auth_router(APIRouter(), validate)
            task_router = configure_task_router(APIRouter(), task_queries, validate)

            app.include_router(auth_router, prefix="/auth", tags=["auth"])
            app.include_router(task_router, prefix="/tasks", tags=["tasks"])

            yield

            LOGGER.info("TaskWeb API is shutting down")

    app = FastAPI(
        title="TaskWeb API",
        version="0.1.0",
        lifespan=lifespan,
        root_path=config.root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def read_root() -> str:
        return "TaskWeb API"

    return app


def create_app(env_file: str | None = os.environ.get("ENV_FILE", ".env")) -> FastAPI:
    """Application factory used by ``uvicorn --factory`` and worker processes.

    Workers cannot receive arguments, so the dotenv file is taken from the
    ``ENV_FILE`` variable when no path is given.

    :param env_file: Path to a dotenv file, or None to use the environment only
    :return: The FastAPI application
    """
    config = load_config_from_env(env_file)
    configure_logging(config)
    return configure_fastapi_app(config)
