"""Main entry point for the TaskWeb API."""

import argparse
import os

import uvicorn

from taskweb.app import configure_fastapi_app
from taskweb.config import AppConfig, configure_logging, load_config_from_env


def export_worker_environment(config: AppConfig, env_file: str) -> None:
    """Pass settings to worker processes, which rebuild the app from the environment.

    The signing key in use is exported as well, so a key generated here is
    shared by every worker and a token issued by one verifies on the others.

    :param config: The configuration loaded by this process
    :param env_file: Path to the dotenv file the workers should read
    """
    os.environ["ENV_FILE"] = env_file
    os.environ["SECRET_KEY"] = config.security_manager.secret_key


def main() -> None:
    """Run the FastAPI application using Uvicorn."""
    parser = argparse.ArgumentParser(
        description="Run the TaskWeb API FastAPI application.",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to the environment configuration file.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the FastAPI application on.",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to run the FastAPI application on.",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes to run.",
    )
    parser.add_argument(
        "--create-admin",
        action="store_true",
        help="Prompt for the first Administrator account if the database is empty.",
    )
    parser.add_argument(
        "--hash-password",
        action="store_true",
        help="Prompt for a password, print its bcrypt hash and exit.",
    )
    args = parser.parse_args()

    config = load_config_from_env(args.env_file)
    configure_logging(config)

    if args.hash_password:
        password = config.security_manager.prompt_password()
        print(config.security_manager.hash_password(password))  # noqa: T201
        return

    if args.create_admin:
        username, password = config.security_manager.prompt_admin_account()
        os.environ["ADMIN_USERNAME"] = username
        os.environ["ADMIN_PASSWORD"] = password
        config.admin_username = username
        config.admin_password = password

    if args.reload or args.workers > 1:
        export_worker_environment(config, args.env_file)
        uvicorn.run(
            "taskweb.app:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=args.workers,
        )
        return

    uvicorn.run(configure_fastapi_app(config), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
