"""Command-line interface for the crawler."""

import asyncio
import json
import logging
import signal
import sys
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from typing_extensions import Annotated

from reddit_crawler.config.settings import settings
from reddit_crawler.core.comment_tree import CommentTreeBuilder
from reddit_crawler.core.errors import CommentTreeError, InvalidVote, StoreError
from reddit_crawler.core.gateway import EntityStoreGateway
from reddit_crawler.core.orchestrator import CrawlOrchestrator, CrawlReport
from reddit_crawler.feed.reddit_feed import RedditFeed
from reddit_crawler.models import Base
from reddit_crawler.utils.db_session import dispose_engine, get_async_engine, get_async_session_factory
from reddit_crawler.utils.logging_utils import setup_logging

app = typer.Typer(help="Reddit crawler - ingest subreddits, posts and authors into a relational store")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")

logger = logging.getLogger(__name__)

T = TypeVar("T")

LogLevelOption = Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")]


def build_gateway() -> EntityStoreGateway:
    return EntityStoreGateway(get_async_session_factory(), bcrypt_rounds=settings.BCRYPT_ROUNDS)


def run_async(func: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine function and dispose the engine afterwards."""

    async def _runner() -> T:
        try:
            return await func()
        finally:
            await dispose_engine()

    return asyncio.run(_runner())


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


async def run_crawl() -> CrawlReport:
    """Run one crawl, stopping gracefully on SIGINT/SIGTERM."""
    gateway = build_gateway()
    async with RedditFeed.from_settings(settings) as feed:
        orchestrator = CrawlOrchestrator(
            feed,
            gateway,
            max_concurrency=settings.crawl_concurrency,
            default_password=settings.CRAWL_DEFAULT_PASSWORD,
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, orchestrator.stop)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handlers not supported here; {sig.name} will not stop the crawl gracefully")

        return await orchestrator.run()


@app.command()
def crawl(
    strict: Annotated[bool, typer.Option("--strict", help="Exit with status 1 if any unit failed")] = False,
    loglevel: LogLevelOption = "INFO",
) -> None:
    """Crawl the front page once and store subreddits, posts and authors."""
    setup_logging(log_level=loglevel)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} crawl")

    report = run_async(run_crawl)

    echo_json(report.summary())
    for failure in report.failures:
        typer.echo(f"FAILED {failure}", err=True)
    if strict and report.failed:
        raise typer.Exit(code=1)


@app.command()
def comments(
    post_id: Annotated[int, typer.Argument(help="Post to build the comment tree for")],
    levels: Annotated[int, typer.Option("--levels", "-n", min=1, help="Tree levels to fetch (1 = root comments only)")] = 3,
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """Print the threaded comments of a post as JSON."""
    setup_logging(log_level=loglevel)
    builder = CommentTreeBuilder(build_gateway(), max_concurrency=settings.DB_POOL_SIZE)

    try:
        forest = run_async(lambda: builder.build(post_id, levels))
    except CommentTreeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    echo_json([node.model_dump(mode="json") for node in forest])


@app.command("top-posts")
def top_posts(
    limit: Annotated[Optional[int], typer.Option("--limit", min=1, help="Page size")] = None,
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """Print the highest scoring posts as JSON."""
    setup_logging(log_level=loglevel)
    gateway = build_gateway()
    posts = run_async(lambda: gateway.fetch_post_scores(limit or settings.TOP_POSTS_LIMIT))
    echo_json([post.model_dump(mode="json") for post in posts])


@app.command(context_settings={"ignore_unknown_options": True})
def vote(
    post_id: Annotated[int, typer.Argument()],
    user_id: Annotated[int, typer.Argument()],
    direction: Annotated[int, typer.Argument(help="-1, 0 or 1")],
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """Cast or change a user's vote on a post."""
    setup_logging(log_level=loglevel)
    gateway = build_gateway()

    try:
        run_async(lambda: gateway.upsert_vote(post_id, user_id, direction))
    except InvalidVote as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)
    except StoreError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Recorded vote {direction:+d} by user {user_id} on post {post_id}")


@app.command()
def subreddits(loglevel: LogLevelOption = "WARNING") -> None:
    """List stored subreddits, newest first."""
    setup_logging(log_level=loglevel)
    gateway = build_gateway()
    rows = run_async(gateway.list_subreddits)
    echo_json([row.model_dump() for row in rows])


@db_app.command("init")
def init_db(loglevel: LogLevelOption = "INFO") -> None:
    """Create any missing tables from the ORM metadata (use Alembic in production)."""
    setup_logging(log_level=loglevel)

    async def _create_all() -> None:
        async with get_async_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run_async(_create_all)
    logger.info("Database tables are in place")
    typer.echo("Database initialised")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
