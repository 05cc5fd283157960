"""Infrastructure adapters."""

from instance_pool.infrastructure.adapters.logging_adapter import LoggingAdapter

__all__ = ["LoggingAdapter"]
