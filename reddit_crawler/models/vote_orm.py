"""
SQLAlchemy ORM model for the 'votes' relation.
"""

from sqlalchemy import CheckConstraint, ForeignKey, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

VALID_VOTE_DIRECTIONS = frozenset({-1, 0, 1})


class VoteORM(TimestampMixin, Base):
    """
    One user's vote on one post.

    The composite primary key (postId, userId) is the upsert target: re-voting
    overwrites voteDirection, it never adds a row.
    """
    __tablename__ = "votes"

    post_id: Mapped[int] = mapped_column("postId", ForeignKey("posts.id"), primary_key=True)
    user_id: Mapped[int] = mapped_column("userId", ForeignKey("users.id"), primary_key=True)
    vote_direction: Mapped[int] = mapped_column("voteDirection", SmallInteger, nullable=False)

    __table_args__ = (
        CheckConstraint('"voteDirection" IN (-1, 0, 1)', name="ck_votes_voteDirection"),
    )

    def __repr__(self) -> str:
        return f"<VoteORM(post_id={self.post_id}, user_id={self.user_id}, direction={self.vote_direction})>"
