"""Retry decorator for throttled control-plane calls."""

import functools
import random
import time
from collections.abc import Iterable
from typing import Any, Callable, Optional, TypeVar

from botocore.exceptions import ClientError

from instance_pool.infrastructure.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Error codes that describe a busy or briefly unavailable service.
RETRYABLE_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "ServiceUnavailable",
        "Unavailable",
        "InternalError",
        "InternalFailure",
        "RequestTimeout",
    }
)

STRATEGIES = ("exponential", "fixed")


def is_retryable(error: BaseException, retryable_codes: Iterable[str] = RETRYABLE_ERROR_CODES) -> bool:
    """Whether an exception is a transient AWS error worth retrying."""
    if not isinstance(error, ClientError):
        return False
    code = error.response.get("Error", {}).get("Code", "")
    return code in set(retryable_codes)


def compute_delay(
    attempt: int,
    strategy: str = "exponential",
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = False,
) -> float:
    """
    Delay before retry number ``attempt`` (1-based).

    Args:
        attempt: The attempt that just failed
        strategy: "exponential" doubles the delay per attempt, "fixed" keeps it constant
        base_delay: Delay after the first failure in seconds
        max_delay: Upper bound in seconds
        jitter: Randomise the delay between half and the full value

    Returns:
        Delay in seconds
    """
    if strategy == "fixed":
        delay = base_delay
    else:
        delay = base_delay * (2 ** (attempt - 1))
    delay = min(delay, max_delay)
    if jitter:
        delay = random.uniform(delay / 2, delay)
    return delay


def retry(
    strategy: str = "exponential",
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = False,
    service: Optional[str] = None,
    retryable_codes: Iterable[str] = RETRYABLE_ERROR_CODES,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry a function when it fails with a throttling or availability error.

    Any other exception propagates on the first attempt.

    Args:
        strategy: Backoff strategy, "exponential" or "fixed"
        max_attempts: Total number of attempts including the first
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Randomise delays
        service: Service name used in log messages
        retryable_codes: AWS error codes that trigger a retry
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown retry strategy: {strategy}")
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    codes = frozenset(retryable_codes)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except ClientError as e:
                    if attempt >= max_attempts or not is_retryable(e, codes):
                        raise
                    delay = compute_delay(attempt, strategy, base_delay, max_delay, jitter)
                    logger.warning(
                        "Retrying %s.%s after %s (attempt %d/%d, waiting %.1fs)",
                        service or "aws",
                        func.__name__,
                        e.response.get("Error", {}).get("Code"),
                        attempt,
                        max_attempts,
                        delay,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
