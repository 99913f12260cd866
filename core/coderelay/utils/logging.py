"""Logging configuration for coderelay."""

import logging
import os
import sys


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Configure and return the application logger."""
    if level is None:
        level = os.environ.get("CODERELAY_LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger("coderelay")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


logger = setup_logging()
