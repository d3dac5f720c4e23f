"""
Crawl Orchestrator.

Discovers subreddits from the feed, ensures each one exists in the store,
fetches its link posts and writes them with their resolved authors. Subreddits
and posts are crawled concurrently, but every store operation passes through
one semaphore sized to the connection pool.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from reddit_crawler.core.errors import DuplicateSubreddit, StoreError
from reddit_crawler.core.gateway import EntityStoreGateway
from reddit_crawler.core.identity_cache import UserIdentityCache
from reddit_crawler.feed.reddit_feed import RedditFeed
from reddit_crawler.models import FeedPost

logger = logging.getLogger(__name__)


@dataclass
class CrawlFailure:
    """One unit (a subreddit or a post) that could not be written."""

    kind: str
    key: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.kind} {self.key}: {type(self.error).__name__}: {self.error}"


@dataclass
class CrawlReport:
    """Outcome of one crawl run."""

    subreddits_seen: int = 0
    subreddits_created: int = 0
    subreddits_existing: int = 0
    posts_created: int = 0
    users_resolved: int = 0
    units_skipped: int = 0
    failures: List[CrawlFailure] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    def summary(self) -> Dict[str, int]:
        return {
            "subreddits_seen": self.subreddits_seen,
            "subreddits_created": self.subreddits_created,
            "subreddits_existing": self.subreddits_existing,
            "posts_created": self.posts_created,
            "users_resolved": self.users_resolved,
            "units_skipped": self.units_skipped,
            "failures": len(self.failures),
        }


class CrawlOrchestrator:
    """
    Runs crawls of the feed into the entity store.

    Each call to ``run`` gets its own identity cache and concurrency gate, so
    nothing is shared between runs.
    """

    def __init__(
        self,
        feed: RedditFeed,
        gateway: EntityStoreGateway,
        max_concurrency: int = 10,
        default_password: str = "abc123",
    ):
        """
        Args:
            feed: Source of subreddit names and link posts.
            gateway: Store the crawl writes into.
            max_concurrency: Ceiling on outstanding store operations; match the pool size.
            default_password: Password given to every user the crawl creates.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.feed = feed
        self.gateway = gateway
        self.max_concurrency = max_concurrency
        self.default_password = default_password
        self.running = False
        self._stopping = False

    def stop(self) -> None:
        """Stop starting new units. Units already in flight run to completion."""
        if not self._stopping:
            logger.info("Stop requested; no new crawl units will be started")
        self._stopping = True

    async def run(self) -> CrawlReport:
        """
        Crawl the feed once.

        Per-subreddit and per-post failures are collected in the report. Only a
        failure to list the subreddits at all propagates. A ``stop()`` issued
        before the run starts applies to that run; the flag is cleared when the
        run ends.
        """
        self.running = True
        report = CrawlReport()
        gate = asyncio.Semaphore(self.max_concurrency)
        users = UserIdentityCache(self.gateway, self.default_password, gate=gate)

        try:
            names = await self.feed.get_subreddits()
            # The listing may repeat a subreddit; crawl each one once.
            unique_names = list(dict.fromkeys(names))
            report.subreddits_seen = len(unique_names)
            logger.info(f"Crawling {len(unique_names)} subreddit(s) with at most {self.max_concurrency} store operations in flight")

            await asyncio.gather(
                *(self._crawl_subreddit(name, gate, users, report) for name in unique_names)
            )
        finally:
            self.running = False
            self._stopping = False
            report.users_resolved = len(users)

        logger.info(f"Crawl finished: {report.summary()}")
        for failure in report.failures:
            logger.warning(f"Crawl failure: {failure}")
        return report

    async def _crawl_subreddit(
        self,
        name: str,
        gate: asyncio.Semaphore,
        users: UserIdentityCache,
        report: CrawlReport,
    ) -> None:
        if self._stopping:
            report.units_skipped += 1
            return

        try:
            subreddit_id = await self._ensure_subreddit(name, gate, report)
            posts = await self.feed.get_posts(name)
        except Exception as e:
            logger.error(f"Failed to crawl r/{name}: {e}", exc_info=True)
            report.failures.append(CrawlFailure("subreddit", name, e))
            return

        await asyncio.gather(
            *(self._crawl_post(name, subreddit_id, post, gate, users, report) for post in posts)
        )

    async def _ensure_subreddit(self, name: str, gate: asyncio.Semaphore, report: CrawlReport) -> int:
        try:
            async with gate:
                subreddit_id = await self.gateway.create_subreddit(name)
            report.subreddits_created += 1
            logger.debug(f"Created subreddit r/{name} (id={subreddit_id})")
            return subreddit_id
        except DuplicateSubreddit:
            logger.info(f"Subreddit r/{name} already exists, reusing its id")

        async with gate:
            subreddit_id = await self.gateway.get_subreddit_id(name)
        if subreddit_id is None:
            raise StoreError(f"Subreddit {name!r} reported as duplicate but could not be found")
        report.subreddits_existing += 1
        return subreddit_id

    async def _crawl_post(
        self,
        subreddit_name: str,
        subreddit_id: int,
        post: FeedPost,
        gate: asyncio.Semaphore,
        users: UserIdentityCache,
        report: CrawlReport,
    ) -> None:
        if self._stopping:
            report.units_skipped += 1
            return

        try:
            user_id = await users.resolve(post.author)
            async with gate:
                await self.gateway.create_post(subreddit_id, user_id, post.title, post.url)
            report.posts_created += 1
        except Exception as e:
            logger.error(f"Failed to store post {post.url!r} from r/{subreddit_name}: {e}")
            report.failures.append(CrawlFailure("post", post.url, e))
