import logging
from functools import lru_cache
from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from reddit_crawler.config.settings import settings

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite only enforces foreign keys when asked to, once per connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_async_engine(
    database_url: str,
    pool_size: int = 10,
    pool_timeout: int = 30,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create an async engine whose pool never grows past ``pool_size`` connections.

    SQLite URLs get foreign key enforcement switched on so that constraint
    violations surface the same way they do on PostgreSQL.
    """
    kwargs: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    is_sqlite = database_url.startswith("sqlite")
    if not is_sqlite:
        kwargs.update(
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            pool_recycle=3600,
        )

    engine = create_async_engine(database_url, **kwargs)
    if is_sqlite:
        _enable_sqlite_foreign_keys(engine)
    logger.debug(f"Created async engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
        class_=AsyncSession,
    )


@lru_cache
def get_async_engine() -> AsyncEngine:
    """Returns a cached instance of the async engine."""
    return build_async_engine(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        echo=settings.DEBUG,
    )


@lru_cache
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Returns a cached instance of the async session factory."""
    return build_session_factory(get_async_engine())


async def dispose_engine() -> None:
    """Dispose the cached engine and forget the cached factories."""
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
    get_async_engine.cache_clear()
    get_async_session_factory.cache_clear()
