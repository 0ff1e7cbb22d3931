"""
Exponential backoff for the AWS calls the pipeline may repeat safely:
S3 reads, SQS sends and SNS publishes. The DynamoDB product transaction
is never wrapped; a second attempt could create a second product.
"""

import functools
import logging
import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from exceptions import BackendUnavailableError, CatalogError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """How many attempts to make and how long to wait between them."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        jitter_range: Tuple[float, float] = (0.5, 1.5),
        retryable_exceptions: Tuple[Type[Exception], ...] = (BackendUnavailableError,),
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_range = jitter_range
        self.retryable_exceptions = retryable_exceptions

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to sleep after the zero-based `attempt` failed."""
        delay = min(self.base_delay * self.exponential_base ** attempt, self.max_delay)
        if self.jitter:
            delay *= random.uniform(*self.jitter_range)
        return delay

    def should_retry(self, exc: Exception) -> bool:
        if not isinstance(exc, self.retryable_exceptions):
            return False
        # S3 and SQS errors decide per instance (e.g. NoSuchKey is final)
        if isinstance(exc, CatalogError):
            return exc.retryable
        return True


def call_with_retry(
    func: Callable[..., T],
    config: RetryConfig,
    *args,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    **kwargs,
) -> T:
    """
    Call func until it succeeds, raises a non-retryable error or runs out
    of attempts. The last exception is re-raised unchanged.
    """
    name = getattr(func, "__qualname__", getattr(func, "__name__", repr(func)))
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            final = attempt + 1 >= config.max_attempts
            if not config.should_retry(e) or final:
                if final and config.should_retry(e):
                    logger.error(f"{name} gave up after {config.max_attempts} attempts: {e}")
                raise

            delay = config.calculate_delay(attempt)
            logger.warning(
                f"{name} attempt {attempt + 1}/{config.max_attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s"
            )
            if on_retry:
                on_retry(e, attempt + 1)
            time.sleep(delay)
            attempt += 1


def retry_with_backoff(
    config: Optional[RetryConfig] = None,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
):
    """
    Decorator form of call_with_retry.

    Args:
        config: RetryConfig instance (overrides the other params if provided)
        max_attempts: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        on_retry: Called with (exception, attempt_number) before each sleep

    Example:
        send = retry_with_backoff(config=retry_config)(self._send_once)
    """
    if config is None:
        config = RetryConfig(max_attempts=max_attempts, base_delay=base_delay, max_delay=max_delay)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return call_with_retry(func, config, *args, on_retry=on_retry, **kwargs)
        return wrapper
    return decorator
