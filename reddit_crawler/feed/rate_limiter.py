"""Rate limiting for feed requests."""

import asyncio
import logging
import time
from typing import Mapping, Optional

from reddit_crawler.config.settings import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Rate limiter for feed requests.

    Spaces requests to stay under ``max_requests_per_minute`` and honours the
    ``x-ratelimit-*`` headers the feed returns.
    """

    def __init__(self, config: RateLimitConfig):
        """
        Initialize the rate limiter with configuration.

        Args:
            config: Rate limiting configuration
        """
        self.config = config
        self.remaining_calls: Optional[int] = None
        self.reset_timestamp: Optional[float] = None
        self.last_request_time = 0.0
        self.min_interval = 60.0 / self.config.max_requests_per_minute
        # Concurrent subreddit crawls share one limiter; serialize the spacing check.
        self._lock = asyncio.Lock()

    async def pre_request(self) -> None:
        """
        Sleep as needed before the next request.

        Also reserves the request slot, so concurrent callers are spaced out
        rather than all passing the check at once.
        """
        async with self._lock:
            elapsed = time.time() - self.last_request_time
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)

            if (self.remaining_calls is not None and
                    self.reset_timestamp is not None and
                    self.remaining_calls < self.config.min_remaining_calls):

                wait_time = self.reset_timestamp - time.time() + self.config.sleep_buffer_sec
                if wait_time > 0:
                    logger.info(f"Rate limit approaching: {self.remaining_calls} calls remaining. "
                                f"Sleeping for {wait_time:.2f}s until reset.")
                    await asyncio.sleep(wait_time)
                self.remaining_calls = None
                self.reset_timestamp = None

            self.last_request_time = time.time()

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """
        Update rate limit tracking from a feed response's headers.

        Args:
            headers: Response headers (lookup is case-insensitive for httpx headers)
        """
        remaining = headers.get("x-ratelimit-remaining")
        if remaining is not None:
            try:
                self.remaining_calls = int(float(remaining))
            except (ValueError, TypeError):
                logger.warning("Failed to parse x-ratelimit-remaining header")

        reset = headers.get("x-ratelimit-reset")
        if reset is not None:
            try:
                self.reset_timestamp = time.time() + float(reset)
            except (ValueError, TypeError):
                logger.warning("Failed to parse x-ratelimit-reset header")

        if self.remaining_calls is not None and self.reset_timestamp is not None:
            logger.debug(f"Rate limit status: {self.remaining_calls} calls remaining, "
                         f"reset in {self.reset_timestamp - time.time():.2f}s")

    async def handle_429(self, retry_after: Optional[str] = None) -> None:
        """
        Handle a 429 Too Many Requests response.

        Args:
            retry_after: Value of the Retry-After header, if available
        """
        wait_seconds = 60.0
        if retry_after:
            try:
                wait_seconds = float(retry_after)
            except (ValueError, TypeError):
                logger.warning(f"Unparseable Retry-After header {retry_after!r}, using default wait")

        wait_seconds += self.config.sleep_buffer_sec

        logger.warning(f"Rate limited (429). Waiting for {wait_seconds:.2f}s before retrying.")
        await asyncio.sleep(wait_seconds)

        self.remaining_calls = None
        self.reset_timestamp = None
