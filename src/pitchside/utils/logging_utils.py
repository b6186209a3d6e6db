"""
Logging utilities for Pitchside.

Every module gets its logger from `get_logger(__name__)`. The root logger is
configured lazily on first use (timestamped ``asctime | name | level |
message`` lines) at LOG_LEVEL, which can be overridden with the
PITCHSIDE_LOG_LEVEL environment variable or a CLI ``--log-level`` flag.
"""

import logging
from typing import Optional, Union

from pitchside.config import LOG_FORMAT, LOG_LEVEL

ROOT_LOGGER_NAME = "pitchside"


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Configure the root handler if nobody has, then set the package level.

    Parameters
    ----------
    level : int | str | None
        Logging level (``"DEBUG"``, ``logging.INFO``...). None keeps
        LOG_LEVEL.
    """
    if not logging.getLogger().handlers:
        logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    if level is not None:
        if isinstance(level, str):
            level = level.upper()
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger, configuring the root logger on first use.

    Parameters
    ----------
    name : str | None
        Logger name, normally ``__name__``. None returns the package logger.
    """
    configure_logging()
    return logging.getLogger(name if name is not None else ROOT_LOGGER_NAME)
