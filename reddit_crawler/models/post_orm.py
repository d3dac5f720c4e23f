"""
SQLAlchemy ORM model for the 'posts' table.
"""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class PostORM(TimestampMixin, Base):
    """
    A crawled link post. Belongs to exactly one subreddit and one author.
    """
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column("userId", ForeignKey("users.id"), nullable=False)
    subreddit_id: Mapped[int] = mapped_column("subredditId", ForeignKey("subreddits.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)

    __table_args__ = (
        Index("ix_posts_subredditId", "subredditId"),
        Index("ix_posts_userId", "userId"),
    )

    def __repr__(self) -> str:
        return f"<PostORM(id={self.id}, subreddit_id={self.subreddit_id}, title='{self.title[:30]}')>"
