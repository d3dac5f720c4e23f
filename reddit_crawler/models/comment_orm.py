"""
SQLAlchemy ORM model for the 'comments' table.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class CommentORM(TimestampMixin, Base):
    """
    A comment on a post. ``parent_id`` is NULL for root comments; otherwise it
    points at another comment on the same post.
    """
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column("userId", ForeignKey("users.id"), nullable=False)
    post_id: Mapped[int] = mapped_column("postId", ForeignKey("posts.id"), nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column("parentId", ForeignKey("comments.id"), nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        # Direct-children lookup is always scoped by post.
        Index("ix_comments_postId_parentId", "postId", "parentId"),
    )

    def __repr__(self) -> str:
        return f"<CommentORM(id={self.id}, post_id={self.post_id}, parent_id={self.parent_id})>"
