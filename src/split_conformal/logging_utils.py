from __future__ import annotations

import logging
import sys
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(
    name: str,
    level: int = logging.INFO,
    stream: Optional[object] = None,
) -> logging.Logger:
    """
    Create and configure a logger with a simple, consistent format.

    Parameters
    ----------
    name:
        Logger name (usually __name__ of the module).
    level:
        Logging level (default: logging.INFO).
    stream:
        Stream to write logs to. Defaults to sys.stdout.

    Returns
    -------
    logger : logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        logger.setLevel(level)
        return logger

    logger.setLevel(level)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_package_level(level: int | str) -> None:
    """Adjust the level of every logger already created under ``split_conformal``."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    manager = logging.Logger.manager
    for name, logger in list(manager.loggerDict.items()):
        if name.startswith("split_conformal") and isinstance(logger, logging.Logger):
            logger.setLevel(level)
