"""
Command-line entry point for the Responses Gateway.

Flags override the environment-backed settings:

    responses-gateway --account-id <id> --token <cf-token> --key <client-key>
"""

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from .config import Settings
from .logging_config import initialize_logging
from .main import create_app

logger = logging.getLogger(__name__)


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    """Build the argument parser; defaults come from the environment."""
    parser = argparse.ArgumentParser(
        description="OpenAI-compatible gateway for the Cloudflare Workers AI Responses API",
    )
    parser.add_argument(
        "-i", "--account-id",
        default=defaults.account_id,
        help="Cloudflare account ID (env: CF_ACCOUNT_ID)",
    )
    parser.add_argument(
        "-m", "--model",
        default=defaults.model,
        help=f"Cloudflare model (default: {defaults.model}, env: CF_MODEL)",
    )
    parser.add_argument(
        "-t", "--token",
        default=defaults.auth_token,
        help="Cloudflare auth token (env: CF_AUTH_TOKEN)",
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=defaults.api_port,
        help=f"Port to listen on (default: {defaults.api_port}, env: API_PORT)",
    )
    parser.add_argument(
        "-k", "--key",
        default=defaults.client_key,
        help="Client authorization key; empty disables auth (env: CLIENT_KEY)",
    )
    parser.add_argument(
        "--host",
        default=defaults.api_host,
        help=f"Host to bind to (default: {defaults.api_host}, env: API_HOST)",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.log_level,
        help=f"Log level (default: {defaults.log_level}, env: LOG_LEVEL)",
    )
    return parser


def settings_from_args(argv: list[str] | None = None) -> Settings:
    """
    Parse command-line arguments into a Settings object.

    Raises:
        ValueError: If no backend auth token was given.
    """
    defaults = Settings()
    args = build_parser(defaults).parse_args(argv)
    if not args.token:
        raise ValueError("Backend auth token is required (--token or CF_AUTH_TOKEN)")

    return defaults.model_copy(
        update={
            "account_id": args.account_id,
            "model": args.model,
            "auth_token": args.token,
            "api_port": args.port,
            "client_key": args.key,
            "api_host": args.host,
            "log_level": args.log_level,
        },
    )


def main(argv: list[str] | None = None) -> None:
    """Run the gateway server."""
    try:
        settings = settings_from_args(argv)
    except (ValueError, ValidationError) as e:
        initialize_logging()
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    initialize_logging(settings.log_level)
    logger.info(f"Server starting on port {settings.api_port}")
    try:
        uvicorn.run(
            create_app(settings),
            host=settings.api_host,
            port=settings.api_port,
            log_level=settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Shutting down gateway...")
        sys.exit(0)


if __name__ == "__main__":
    main()
