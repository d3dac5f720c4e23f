"""
SQLAlchemy ORM model for the 'users' table.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class UserORM(TimestampMixin, Base):
    """
    A crawled author. Created once per distinct username and never updated.

    Attributes:
        id (int): Store-assigned identifier.
        username (str): Unique author name as reported by the feed.
        password (str): bcrypt hash of the account password.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, comment="Unique author name.")
    password: Mapped[str] = mapped_column(String(60), nullable=False, comment="bcrypt password hash.")

    def __repr__(self) -> str:
        return f"<UserORM(id={self.id}, username='{self.username}')>"
