"""
Domain errors raised by the entity store gateway and the components built on it.

Duplicate errors are recoverable (the caller looks up the existing id), missing
reference errors are fatal to the single write that raised them.
"""

from typing import Optional


class StoreError(Exception):
    """Base class for every domain-level store failure."""


class DuplicateEntityError(StoreError):
    """A unique key is already taken."""

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Duplicate entry: {key!r}")


class DuplicateUsername(DuplicateEntityError):
    def __init__(self, username: str):
        super().__init__(username, f"A user with username {username!r} already exists")


class DuplicateSubreddit(DuplicateEntityError):
    def __init__(self, name: str):
        super().__init__(name, f"A subreddit named {name!r} already exists")


class MissingReferenceError(StoreError):
    """A foreign key points at a row that does not exist."""

    entity = "row"

    def __init__(self, entity_id: Optional[int]):
        self.entity_id = entity_id
        super().__init__(f"No {self.entity} with id {entity_id!r}")


class MissingSubreddit(MissingReferenceError):
    entity = "subreddit"


class MissingUser(MissingReferenceError):
    entity = "user"


class MissingPost(MissingReferenceError):
    entity = "post"


class MissingParentComment(MissingReferenceError):
    entity = "parent comment on this post"


class InvalidVote(StoreError):
    def __init__(self, direction: object):
        self.direction = direction
        super().__init__(f"Invalid vote direction {direction!r}; expected -1, 0 or 1")


class UserResolutionError(StoreError):
    """The identity cache could neither create nor find a user."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Could not resolve an id for user {username!r}")


class CommentTreeError(StoreError):
    """Building the comment forest for a post failed as a whole."""

    def __init__(self, post_id: int):
        self.post_id = post_id
        super().__init__(f"Failed to build the comment tree for post {post_id}")
