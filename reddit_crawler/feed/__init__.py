"""
Feed client and its request helpers.
"""

from .error_handler import ConsecutiveErrorTracker, with_exponential_backoff
from .rate_limiter import RateLimiter
from .reddit_feed import RedditFeed

__all__ = [
    "ConsecutiveErrorTracker",
    "RateLimiter",
    "RedditFeed",
    "with_exponential_backoff",
]
