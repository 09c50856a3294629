"""Logging configuration for applications built on the portfolio constructor.

The library itself only creates module loggers; handlers are installed by
the embedding application through `setup_logging`.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "portfolio_constructor.log"
PACKAGE_LOGGER = "portfolio_constructor"

FILE_FORMAT = "%(asctime)s - %(levelname)-8s - %(name)-40s - %(funcName)s:%(lineno)d - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level=logging.INFO, log_dir: str | Path | None = "logs") -> logging.Logger:
    """Set up logging for the optimizer package.

    Args:
        level (int): Console logging level, default is logging.INFO.
        log_dir (str | Path | None): Directory for the rotating debug log. Pass
            None to log to the console only.

    Returns:
        logging.Logger: The package logger the handlers were attached to.

    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if package_logger.hasHandlers():
        package_logger.handlers.clear()
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    stream_handler.setLevel(level)
    package_logger.addHandler(stream_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME, maxBytes=5 * 1024 * 1024, backupCount=3
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)

    package_logger.info(
        "Logging configured. Console level: %s, file logging: %s",
        logging.getLevelName(level),
        "off" if log_dir is None else log_dir,
    )
    return package_logger
