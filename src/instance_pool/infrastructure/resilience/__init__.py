"""Resilience helpers."""

from instance_pool.infrastructure.resilience.retry import RETRYABLE_ERROR_CODES, is_retryable, retry

__all__ = ["RETRYABLE_ERROR_CODES", "is_retryable", "retry"]
