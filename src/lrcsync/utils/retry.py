"""Exponential backoff for flaky catalog requests."""

import time
from functools import wraps
from typing import Callable, Iterator, TypeVar, Any, Optional, Type, Tuple

from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

# Default retry settings
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_BACKOFF_FACTOR = 2.0


def backoff_delays(
    max_retries: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
) -> Iterator[float]:
    """Yield the pause before each retry, capped at ``max_delay``."""
    delay = base_delay
    for _ in range(max_retries):
        yield min(delay, max_delay)
        delay *= backoff_factor


def retry_with_backoff(
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that retries a call with exponential backoff.

    An error is retried when it is one of ``exceptions`` and, if given,
    ``retry_if(error)`` is true. Anything else propagates on the first attempt,
    so a request that failed for good (a 404, a bad password) is not repeated.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Pause before the first retry in seconds
        max_delay: Longest pause between retries in seconds
        backoff_factor: Multiplier for the pause after each retry
        exceptions: Exception types that may be retried
        retry_if: Predicate narrowing which of those errors are retried
        on_retry: Called before each retry with (exception, retry number)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delays = backoff_delays(max_retries, base_delay, max_delay, backoff_factor)
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    delay = next(delays, None)
                    if delay is None:
                        if max_retries:
                            logger.warning(
                                f"Giving up on {func.__name__} after {max_retries} retries: {e}"
                            )
                        raise
                    attempt += 1
                    logger.debug(
                        f"Retry {attempt}/{max_retries} for {func.__name__} in {delay:.1f}s: {e}"
                    )
                    if on_retry:
                        on_retry(e, attempt)
                    time.sleep(delay)

        return wrapper
    return decorator
