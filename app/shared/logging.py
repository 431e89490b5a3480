"""
Logging configuration for the application.

Sets up structured logging with a consistent format.
Development mode is verbose; production mode keeps lines short.
Logging must not change program behavior.
Never logs sensitive data (request bodies, cookies, secrets).
"""

import logging
import sys

DEV_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
PROD_LOG_FORMAT = "%(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", mode: str = "production") -> None:
    """Configure structured logging for the application.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
        mode: "development" for the verbose layout, anything else for the
            concise one.
    """
    log_format = DEV_LOG_FORMAT if mode == "development" else PROD_LOG_FORMAT
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    # The access-log stage replaces uvicorn's own access lines
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
