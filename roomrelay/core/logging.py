# roomrelay/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Driver loggers that are chatty at INFO
NOISY_LOGGERS = ("pymongo", "motor", "redis", "uvicorn.access")


def setup_logging(level_name: str | None = None) -> None:
    """
    Configure application-wide logging.

    - Root level comes from ``level_name`` or the LOG_LEVEL env var (default INFO)
    - Logs go to stdout so container runtimes pick them up
    - MongoDB / Redis drivers and Uvicorn access logs are held at WARNING
    """
    level_name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Uvicorn (or pytest) may already have installed handlers
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Helper to get a logger with our app's configuration applied.

    Usage:
        from roomrelay.core.logging import get_logger

        logger = get_logger(__name__)
        logger.info("Room joined")
    """
    return logging.getLogger(name)
