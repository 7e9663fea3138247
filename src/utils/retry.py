"""Bounded retry-on-429 for non-interactive completion calls."""

import asyncio
from functools import wraps

from src.utils.errors import RateLimitedError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def with_rate_limit_retry(max_attempts: int = 3, initial_delay: float = 2.0):
    """
    Retry an async call when it raises RateLimitedError.

    Waits initial_delay, then doubles it, between attempts. Any other
    exception propagates immediately. After max_attempts the last
    RateLimitedError is re-raised.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except RateLimitedError:
                    if attempt >= max_attempts - 1:
                        logger.error(
                            "Rate limit retries exhausted",
                            operation=func.__name__,
                            attempts=max_attempts,
                        )
                        raise
                    delay = initial_delay * (2 ** attempt)
                    logger.warning(
                        "Rate limited, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay_seconds=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
