"""Logging setup and Logfire cloud observability."""

import logging

import logfire

from betsettler import __version__
from betsettler.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "pymongo")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the worker process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    # Reduce noise from HTTP and driver libraries
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire and bridge Python logging into it.

    Must be called once at startup, before the first settlement cycle.

    Instruments:
    - HTTPX clients (ledger submissions)
    - Python logging (root logger handler)

    Without a token this only logs a warning; settlement runs regardless.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="betsettler",
            service_version=__version__,
            environment=settings.environment,
        )

        logfire.instrument_httpx()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
