"""Client for the public JSON listing endpoints of the link aggregator."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from reddit_crawler.config.settings import Settings
from reddit_crawler.feed.error_handler import ConsecutiveErrorTracker, with_exponential_backoff
from reddit_crawler.feed.rate_limiter import RateLimiter
from reddit_crawler.models import FeedPost

logger = logging.getLogger(__name__)


class RedditFeed:
    """
    Read-only feed of front-page subreddits and their link posts.

    Every request goes through the rate limiter and is retried with exponential
    backoff on 5xx responses and transport errors.
    """

    def __init__(
        self,
        base_url: str = "https://www.reddit.com",
        user_agent: str = "reddit_crawler/0.1",
        rate_limiter: Optional[RateLimiter] = None,
        error_tracker: Optional[ConsecutiveErrorTracker] = None,
        subreddit_limit: int = 40,
        post_limit: int = 50,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Root URL of the feed.
            user_agent: User-Agent header sent with every request.
            rate_limiter: Optional limiter consulted before each request.
            error_tracker: Optional tracker aborting after repeated 5xx responses.
            subreddit_limit: Page size of the front-page listing.
            post_limit: Page size of a subreddit listing.
            timeout: Request timeout in seconds.
            client: Pre-built HTTP client; the feed only closes clients it created.
        """
        self.rate_limiter = rate_limiter
        self.error_tracker = error_tracker
        self.subreddit_limit = subreddit_limit
        self.post_limit = post_limit
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedditFeed":
        return cls(
            base_url=settings.FEED_BASE_URL,
            user_agent=settings.FEED_USER_AGENT,
            rate_limiter=RateLimiter(settings.rate_limit_config()),
            error_tracker=ConsecutiveErrorTracker(settings.FEED_FAILURE_THRESHOLD),
            subreddit_limit=settings.FEED_SUBREDDIT_LIMIT,
            post_limit=settings.FEED_POST_LIMIT,
            timeout=settings.FEED_TIMEOUT_SECONDS,
        )

    async def __aenter__(self) -> "RedditFeed":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @with_exponential_backoff()
    async def _get_listing(self, path: str, limit: int) -> List[Dict[str, Any]]:
        """
        Fetch one listing page and return the ``data`` object of each child.

        Raises:
            httpx.HTTPStatusError: For non-2xx responses (after retries for 5xx).
        """
        if self.rate_limiter:
            await self.rate_limiter.pre_request()

        response = await self.client.get(path, params={"limit": limit})
        if self.rate_limiter:
            self.rate_limiter.update_from_headers(response.headers)
        response.raise_for_status()

        payload = response.json()
        return [child.get("data", {}) for child in payload.get("data", {}).get("children", [])]

    async def get_subreddits(self) -> List[str]:
        """
        Names of the subreddits on the front page, in listing order.

        Duplicates are kept; the same subreddit can hold several front-page slots.
        """
        children = await self._get_listing("/.json", self.subreddit_limit)
        names = [child["subreddit"] for child in children if child.get("subreddit")]
        logger.info(f"Front page listed {len(names)} post(s) across {len(set(names))} subreddit(s)")
        return names

    async def get_posts(self, subreddit: str) -> List[FeedPost]:
        """Link posts of ``subreddit``; self-posts are dropped."""
        children = await self._get_listing(f"/r/{subreddit}.json", self.post_limit)
        posts = [
            FeedPost(title=child["title"], url=child["url"], author=child["author"])
            for child in children
            if not child.get("is_self") and child.get("url")
        ]
        logger.info(f"r/{subreddit}: {len(posts)} link post(s) out of {len(children)} listed")
        return posts
