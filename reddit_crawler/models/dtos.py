"""
Pydantic Data Transfer Objects (DTOs) for the crawler.

These models carry feed records into the orchestrator and query results out of
the gateway and the comment tree builder.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class FeedPost(BaseModel):
    """A link post as listed by the feed, self-posts already removed."""
    title: str
    url: str
    author: str


class SubredditDTO(BaseModel):
    name: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class PostAuthorDTO(BaseModel):
    id: int
    username: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PostScoreDTO(BaseModel):
    """
    A post enriched with its summed vote score and its author.

    ``vote_score`` is 0 for posts that have never been voted on.
    """
    id: int
    title: str
    url: str
    subreddit_id: int
    user_id: int
    created_at: datetime
    updated_at: datetime
    vote_score: int = 0
    user: PostAuthorDTO

    model_config = {"from_attributes": True}


class CommentNode(BaseModel):
    """
    One node of a comment forest. ``replies`` is complete up to the depth the
    tree was built with; beyond that it is an empty list.
    """
    id: int
    post_id: int
    user_id: int
    parent_id: Optional[int] = None
    text: str
    created_at: datetime
    updated_at: datetime
    replies: List["CommentNode"] = Field(default_factory=list)

    model_config = {"from_attributes": True}


CommentNode.model_rebuild()
