from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Define the root directory of the crawler package
PACKAGE_ROOT_DIR = Path(__file__).parent.parent.resolve()
# Path to the repository root (one level up from the package)
PROJECT_ROOT_DIR = PACKAGE_ROOT_DIR.parent


@dataclass
class RateLimitConfig:
    """Rate limiting configuration for the feed client."""

    max_requests_per_minute: int = 60
    min_remaining_calls: int = 5
    sleep_buffer_sec: int = 2


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "RedditCrawler"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database settings
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "user"
    DB_PASSWORD: str = "password"
    DB_NAME: str = "reddit_api"
    DB_POOL_SIZE: int = 10
    DB_POOL_TIMEOUT: int = 30
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Feed settings
    FEED_BASE_URL: str = "https://www.reddit.com"
    FEED_USER_AGENT: str = "reddit_crawler/0.1"
    FEED_SUBREDDIT_LIMIT: int = 40
    FEED_POST_LIMIT: int = 50
    FEED_TIMEOUT_SECONDS: float = 30.0
    FEED_MAX_REQUESTS_PER_MINUTE: int = 60
    FEED_MIN_REMAINING_CALLS: int = 5
    FEED_SLEEP_BUFFER_SEC: int = 2
    FEED_FAILURE_THRESHOLD: int = 5

    # Crawl settings
    CRAWL_MAX_CONCURRENCY: Optional[int] = None  # None -> DB_POOL_SIZE
    CRAWL_DEFAULT_PASSWORD: str = "abc123"
    BCRYPT_ROUNDS: int = 10
    TOP_POSTS_LIMIT: int = 25

    # Logging configuration path (can be overridden by env var)
    LOGGING_CONFIG_PATH: str = str(PACKAGE_ROOT_DIR / "config" / "logging_config.yaml")

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], values: Any) -> Any:
        if isinstance(v, str):
            return v
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=values.data.get("DB_USER"),
            password=values.data.get("DB_PASSWORD"),
            host=values.data.get("DB_HOST"),
            port=values.data.get("DB_PORT"),
            path=values.data.get("DB_NAME") or "",
        ))

    @field_validator(
        "DB_POOL_SIZE",
        "FEED_SUBREDDIT_LIMIT",
        "FEED_POST_LIMIT",
        "FEED_MAX_REQUESTS_PER_MINUTE",
        "FEED_FAILURE_THRESHOLD",
        "TOP_POSTS_LIMIT",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("CRAWL_MAX_CONCURRENCY")
    @classmethod
    def concurrency_must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @property
    def crawl_concurrency(self) -> int:
        """Effective fan-out ceiling; never wider than the connection pool."""
        if self.CRAWL_MAX_CONCURRENCY is None:
            return self.DB_POOL_SIZE
        return min(self.CRAWL_MAX_CONCURRENCY, self.DB_POOL_SIZE)

    def rate_limit_config(self) -> RateLimitConfig:
        return RateLimitConfig(
            max_requests_per_minute=self.FEED_MAX_REQUESTS_PER_MINUTE,
            min_remaining_calls=self.FEED_MIN_REMAINING_CALLS,
            sleep_buffer_sec=self.FEED_SLEEP_BUFFER_SEC,
        )


# Instantiate settings
settings = Settings()
