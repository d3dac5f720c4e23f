import pytest
import pytest_asyncio

from reddit_crawler.core.gateway import EntityStoreGateway
from reddit_crawler.models import Base
from reddit_crawler.utils.db_session import build_async_engine, build_session_factory


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A throwaway SQLite database with every table created."""
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'crawler.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def gateway(session_factory):
    # Lowest bcrypt cost keeps the suite fast.
    return EntityStoreGateway(session_factory, bcrypt_rounds=4)
