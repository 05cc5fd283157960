"""Logging configuration for the instance pool."""

import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from instance_pool.config.schemas import LoggingConfig

ROOT_LOGGER_NAME = "instance_pool"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package namespace.

    Args:
        name: Module name, usually ``__name__``

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def setup_logging(config: Optional["LoggingConfig"] = None) -> logging.Logger:
    """
    Configure handlers for the package logger.

    ``LOG_LEVEL`` in the environment overrides the configured level. Calling
    this again replaces the handlers installed by the previous call.

    Args:
        config: Logging configuration; defaults are used when omitted

    Returns:
        The configured package logger
    """
    level_name = os.environ.get("LOG_LEVEL") or (config.level if config else "INFO")
    level = getattr(logging, level_name.upper(), logging.INFO)
    log_format = config.format if config else DEFAULT_FORMAT

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)

    if config is None or config.console_enabled:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        root.addHandler(console)

    if config is not None and config.file_path:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.setLevel(level)
    root.propagate = False

    root.debug("Logging configured at level %s", logging.getLevelName(level))
    return root
