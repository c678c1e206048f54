"""Centralized logging utilities."""

import logging
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

PACKAGE_LOGGER = "autoseg_supervisor"

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Args:
        name: Logger name (defaults to the package logger every module
            logger propagates into)
        level: Logging level
        log_file: Optional file to also write supervisor logs to
        format_string: Custom format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger, configuring the package logger on first use.

    Args:
        name: Logger name, normally ``__name__``

    Returns:
        Logger instance
    """
    root = logging.getLogger(PACKAGE_LOGGER)
    if not root.handlers:
        setup_logger(PACKAGE_LOGGER)
    return logging.getLogger(name)


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """
    Render a secret as its first and last ``visible`` characters.

    Values too short to hide anything are fully masked.
    """
    if not value:
        return ""
    if len(value) <= visible * 2:
        return "****"
    return f"{value[:visible]}...{value[-visible:]}"


def redact_url(uri: Optional[str]) -> str:
    """
    Render a location without its query string or fragment.

    Presigned URLs carry their signature in the query, so only the scheme,
    host and path are ever logged.
    """
    if not uri:
        return ""
    parts = urlsplit(uri)
    if not parts.query and not parts.fragment:
        return uri
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")) + "?..."
