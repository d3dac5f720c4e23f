"""create users, subreddits, posts, votes and comments

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> List[sa.Column]:
    return [
        sa.Column("createdAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updatedAt", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password", sa.String(length=60), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "subreddits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=30), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("userId", sa.Integer(), nullable=False),
        sa.Column("subredditId", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("url", sa.String(length=2000), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["userId"], ["users.id"]),
        sa.ForeignKeyConstraint(["subredditId"], ["subreddits.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_posts_subredditId", "posts", ["subredditId"])
    op.create_index("ix_posts_userId", "posts", ["userId"])

    op.create_table(
        "votes",
        sa.Column("postId", sa.Integer(), nullable=False),
        sa.Column("userId", sa.Integer(), nullable=False),
        sa.Column("voteDirection", sa.SmallInteger(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('"voteDirection" IN (-1, 0, 1)', name="ck_votes_voteDirection"),
        sa.ForeignKeyConstraint(["postId"], ["posts.id"]),
        sa.ForeignKeyConstraint(["userId"], ["users.id"]),
        sa.PrimaryKeyConstraint("postId", "userId"),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("userId", sa.Integer(), nullable=False),
        sa.Column("postId", sa.Integer(), nullable=False),
        sa.Column("parentId", sa.Integer(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["userId"], ["users.id"]),
        sa.ForeignKeyConstraint(["postId"], ["posts.id"]),
        sa.ForeignKeyConstraint(["parentId"], ["comments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_postId_parentId", "comments", ["postId", "parentId"])


def downgrade() -> None:
    op.drop_index("ix_comments_postId_parentId", table_name="comments")
    op.drop_table("comments")
    op.drop_table("votes")
    op.drop_index("ix_posts_userId", table_name="posts")
    op.drop_index("ix_posts_subredditId", table_name="posts")
    op.drop_table("posts")
    op.drop_table("subreddits")
    op.drop_table("users")
