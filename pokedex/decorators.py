"""
Reusable decorators for the data layer.

This module contains decorators for common functionality such as:
- Automatic retries with capped exponential backoff.
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, Optional, Type, Union

import aiohttp

logger = logging.getLogger("pokedex.decorators")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """
    Delay to wait after a failed attempt (1-based).

    The formula is `min(base_delay * 2^(attempt - 1), max_delay)`.
    """
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def retry_on_error(
    max_retries: int = 3,
    exceptions: Union[Type[Exception], tuple] = (
        aiohttp.ClientError,
        asyncio.TimeoutError,
    ),
    base_delay: float = 1.0,
    max_delay: float = 5.0,
    on_failure: Optional[Callable[[int, Exception], None]] = None,
):
    """
    Decorator to retry async functions on specific exceptions with exponential backoff.

    `max_retries` is the total number of attempts, so a value of 1 disables
    retrying. There is no wait after the last attempt; its exception is
    re-raised unchanged.

    Args:
        max_retries: Maximum number of attempts before giving up.
        exceptions: Exception type or tuple of exceptions to catch and retry.
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay in seconds between retries (caps the backoff).
        on_failure: Optional hook called with (attempt, exception) after every
            failed attempt, used for debug logging.

    Returns:
        Decorated function wrapper.

    Raises:
        Exception: The last exception encountered if all retries fail.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e

                    if on_failure is not None:
                        on_failure(attempt, e)

                    if attempt == max_retries:
                        logger.debug(
                            f"{func.__name__} failed after {max_retries} attempts: {e}"
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)

                    logger.debug(
                        f"{func.__name__} attempt {attempt}/{max_retries} failed: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )

                    await asyncio.sleep(delay)

            # Unreachable, the last attempt re-raises above
            if last_exception:
                raise last_exception

        return wrapper

    return decorator
