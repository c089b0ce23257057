"""
Logging setup.

Configures loguru sinks for console and optional rotating file output.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure logger with console output and optional file rotation.

    Args:
        level: Minimum log level for all sinks
        log_file: Path of the rotating log file, None for console only
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper())

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level.upper(),
            encoding="utf-8",
        )

    logger.info("Starting SimplePay...")
