"""Logging configuration for NetCounter."""

import logging
import os
import sys
from collections.abc import Mapping

LOG_LEVEL_ENV = "NETCOUNTER_LOG_LEVEL"


def configure_logging(env: Mapping[str, str] | None = None) -> None:
    """Configure application-wide logging.

    Reads NETCOUNTER_LOG_LEVEL from ``env`` (default: os.environ), the same
    way Settings.from_env does; unknown names fall back to INFO.
    Logs to stderr with timestamp, level, module name, and message.

    Examples:
        # Default INFO level
        $ python -m netcounter

        # Every usage report and registration call
        $ NETCOUNTER_LOG_LEVEL=DEBUG python -m netcounter
    """
    env = os.environ if env is None else env
    log_level_str = env.get(LOG_LEVEL_ENV, "INFO").strip().upper()

    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    log_level = log_level_map.get(log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    logger = logging.getLogger(__name__)
    logger.info("Logging configured: level=%s", logging.getLevelName(log_level))
    if log_level_str not in log_level_map:
        logger.warning("Unknown %s=%r, using INFO", LOG_LEVEL_ENV, log_level_str)
