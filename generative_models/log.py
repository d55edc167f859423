"""Logging setup for the generative_models package."""

import logging
from typing import Optional

from config import LoggingConfig

PACKAGE_LOGGER = "generative_models"


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Safe to call more than once; a handler is only added the first time.
    The root logger is left untouched.
    """
    config = config or LoggingConfig()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(config.level)
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(config.fmt))
        logger.addHandler(ch)
    for handler in logger.handlers:
        handler.setLevel(config.level)
    return logger
