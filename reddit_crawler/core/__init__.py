"""
Core components of the crawler.
"""

from .comment_tree import CommentTreeBuilder
from .gateway import EntityStoreGateway
from .identity_cache import UserIdentityCache
from .orchestrator import CrawlFailure, CrawlOrchestrator, CrawlReport

__all__ = [
    "CommentTreeBuilder",
    "CrawlFailure",
    "CrawlOrchestrator",
    "CrawlReport",
    "EntityStoreGateway",
    "UserIdentityCache",
]
