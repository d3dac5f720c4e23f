"""
Models package for the crawler.

This package contains SQLAlchemy ORM models and Pydantic DTOs.
"""

# Ensure all ORM models are registered with the Base metadata when this package is imported.
from .base import Base
from .comment_orm import CommentORM
from .post_orm import PostORM
from .subreddit_orm import SubredditORM
from .user_orm import UserORM
from .vote_orm import VALID_VOTE_DIRECTIONS, VoteORM

from .dtos import (
    CommentNode,
    FeedPost,
    PostAuthorDTO,
    PostScoreDTO,
    SubredditDTO,
)

__all__ = [
    # Base
    "Base",
    # ORMs
    "CommentORM",
    "PostORM",
    "SubredditORM",
    "UserORM",
    "VoteORM",
    "VALID_VOTE_DIRECTIONS",
    # DTOs
    "CommentNode",
    "FeedPost",
    "PostAuthorDTO",
    "PostScoreDTO",
    "SubredditDTO",
]
