"""Logging adapter implementing LoggingPort."""

from typing import Any

from instance_pool.domain.base.ports.logging_port import LoggingPort
from instance_pool.infrastructure.logging.logger import get_logger


class LoggingAdapter(LoggingPort):
    """Adapter that implements LoggingPort using the package logger."""

    def __init__(self, name: str = "application") -> None:
        """Initialize with logger name."""
        self._logger = get_logger(name)

    def _prepare_kwargs(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Report the caller's location rather than this adapter's."""
        kwargs.setdefault("stacklevel", 2)
        return kwargs

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self._logger.debug(message, *args, **self._prepare_kwargs(kwargs))

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self._logger.info(message, *args, **self._prepare_kwargs(kwargs))

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self._logger.warning(message, *args, **self._prepare_kwargs(kwargs))

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        self._logger.error(message, *args, **self._prepare_kwargs(kwargs))

    def critical(self, message: str, *args: Any, **kwargs: Any) -> None:
        self._logger.critical(message, *args, **self._prepare_kwargs(kwargs))

    def exception(self, message: str, *args: Any, **kwargs: Any) -> None:
        self._logger.exception(message, *args, **self._prepare_kwargs(kwargs))
