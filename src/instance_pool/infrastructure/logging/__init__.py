"""Logging infrastructure."""

from instance_pool.infrastructure.logging.logger import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
