"""Error handling and retry logic for feed requests."""

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar, cast

import httpx

from reddit_crawler.feed.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")
AsyncFunc = Callable[..., Awaitable[T]]


class ConsecutiveErrorTracker:
    """Tracker for consecutive server errors with threshold checking."""

    def __init__(self, threshold: int):
        """
        Initialize the error tracker.

        Args:
            threshold: Maximum number of consecutive errors allowed
        """
        self.threshold = threshold
        self.consecutive_errors = 0

    def record_error(self) -> None:
        self.consecutive_errors += 1
        logger.warning(f"Consecutive errors: {self.consecutive_errors}/{self.threshold}")

    def record_success(self) -> None:
        """Record a successful request, resetting the consecutive error count."""
        if self.consecutive_errors > 0:
            logger.info(f"Resetting consecutive 5xx counter (was {self.consecutive_errors})")
            self.consecutive_errors = 0

    def should_abort(self) -> bool:
        return self.consecutive_errors >= self.threshold


def _bound(owner: Any, name: str, explicit: Any) -> Any:
    """Prefer the decorator argument, fall back to the decorated method's instance."""
    if explicit is not None:
        return explicit
    return getattr(owner, name, None)


def with_exponential_backoff(
    max_retries: int = 5,
    initial_backoff: float = 1.0,
    max_backoff: float = 32.0,
    backoff_factor: float = 2.0,
    error_tracker: Optional[ConsecutiveErrorTracker] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> Callable[[AsyncFunc[T]], AsyncFunc[T]]:
    """
    Decorator for retrying async functions with exponential backoff.

    When applied to a method, ``error_tracker`` and ``rate_limiter`` default to
    the instance attributes of the same name.

    Args:
        max_retries: Maximum number of retry attempts
        initial_backoff: Initial backoff time in seconds
        max_backoff: Maximum backoff time in seconds
        backoff_factor: Multiplier for backoff time between retries
        error_tracker: Optional tracker for consecutive 5xx errors
        rate_limiter: Optional rate limiter for handling 429 responses

    Returns:
        Decorator function
    """
    def decorator(func: AsyncFunc[T]) -> AsyncFunc[T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            owner = args[0] if args else None
            tracker = _bound(owner, "error_tracker", error_tracker)
            limiter = _bound(owner, "rate_limiter", rate_limiter)
            retries = 0
            backoff = initial_backoff

            while True:
                try:
                    result = await func(*args, **kwargs)
                    if tracker:
                        tracker.record_success()
                    return result

                except httpx.HTTPStatusError as e:
                    status = e.response.status_code

                    if status == 429 and limiter:
                        await limiter.handle_429(e.response.headers.get("Retry-After"))
                        # Not counted as a retry
                        continue

                    if 500 <= status < 600:
                        if tracker:
                            tracker.record_error()
                            if tracker.should_abort():
                                logger.critical(
                                    f"Aborting after {tracker.consecutive_errors} consecutive 5xx errors"
                                )
                                raise

                        if retries >= max_retries:
                            logger.error(f"Max retries ({max_retries}) exceeded: {e}")
                            raise

                        logger.warning(
                            f"Server error {status}: {e}. "
                            f"Retrying in {backoff:.2f}s ({retries+1}/{max_retries})"
                        )
                        await asyncio.sleep(backoff)
                        retries += 1
                        backoff = min(backoff * backoff_factor, max_backoff)
                        continue

                    logger.warning(f"Client error {status}: {e}")
                    raise

                except httpx.TransportError as e:
                    if retries >= max_retries:
                        logger.error(f"Max retries ({max_retries}) exceeded: {e}")
                        raise

                    logger.warning(
                        f"Transport error: {e!r}. "
                        f"Retrying in {backoff:.2f}s ({retries+1}/{max_retries})"
                    )
                    await asyncio.sleep(backoff)
                    retries += 1
                    backoff = min(backoff * backoff_factor, max_backoff)

        return cast(AsyncFunc[T], wrapper)
    return decorator
