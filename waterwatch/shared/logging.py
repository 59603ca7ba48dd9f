"""Logging configuration utilities."""

import logging
from typing import Iterable, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Feed polling makes these chatty at DEBUG
QUIET_LOGGERS = ("aiohttp", "asyncio")


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    quiet_loggers: Optional[Iterable[str]] = None,
) -> None:
    """Configure logging for waterwatch commands.

    Args:
        level: Log level name, case-insensitive. Unknown names fall back to INFO.
        format_string: Custom format string for log messages.
        quiet_loggers: Extra logger names to hold at WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=format_string or DEFAULT_FORMAT,
    )

    for logger_name in (*QUIET_LOGGERS, *(quiet_loggers or ())):
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically __name__)."""
    return logging.getLogger(name)
