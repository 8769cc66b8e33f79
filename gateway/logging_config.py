"""
Logging configuration for the Responses Gateway.

This module configures Python's warning system and logging so request and
backend bodies show up in the service log while third-party noise stays quiet.
"""

import logging
import warnings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_warnings() -> None:
    """
    Configure warning filters to suppress harmless third-party warnings.

    These warnings come from dependencies and don't indicate actual problems
    with our code.
    """
    # Suppress aiohttp deprecation warning pulled in by the Phoenix exporter
    warnings.filterwarnings(
        "ignore",
        message="enable_cleanup_closed ignored because",
        category=DeprecationWarning,
        module="aiohttp.connector",
    )


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger and reduce verbosity of chatty libraries.

    Args:
        level: Root log level name, e.g. "INFO" or "DEBUG".
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())

    # httpx logs every request at INFO; the gateway logs its own backend calls
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # OpenTelemetry context detach errors are harmless with async generators
    logging.getLogger("opentelemetry.context").setLevel(logging.ERROR)


def initialize_logging(level: str = "INFO") -> None:
    """
    Initialize all logging and warning configurations.

    Should be called once during application startup, before any
    other code that might generate warnings or logs.
    """
    configure_warnings()
    configure_logging(level)
