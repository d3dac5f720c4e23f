"""
Entity Store Gateway.

Typed create/read operations against users, subreddits, posts, comments and the
vote relation. Every operation opens its own session from the factory it was
given, so a single call never holds more than one pooled connection. Storage
constraint violations are translated into the domain errors of
``reddit_crawler.core.errors``; anything else propagates unchanged.
"""

import asyncio
import logging
from typing import List, Optional, Type

import bcrypt
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reddit_crawler.core.errors import (
    DuplicateSubreddit,
    DuplicateUsername,
    InvalidVote,
    MissingParentComment,
    MissingPost,
    MissingSubreddit,
    MissingUser,
)
from reddit_crawler.models import (
    VALID_VOTE_DIRECTIONS,
    Base,
    CommentORM,
    PostAuthorDTO,
    PostORM,
    PostScoreDTO,
    SubredditDTO,
    SubredditORM,
    UserORM,
    VoteORM,
)

logger = logging.getLogger(__name__)

TOP_POSTS_PAGE_SIZE = 25


class EntityStoreGateway:
    """
    Async gateway over the relational store.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], bcrypt_rounds: int = 10):
        """
        Args:
            session_factory: Factory producing ``AsyncSession`` objects bound to the store.
            bcrypt_rounds: Cost factor used when hashing user passwords.
        """
        self._session_factory = session_factory
        self._bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._bcrypt_rounds)).decode("utf-8")

    async def create_user(self, username: str, password: str) -> int:
        """
        Hash the password and insert a new user.

        Returns:
            The id assigned to the new user.

        Raises:
            DuplicateUsername: If the username is already taken.
        """
        # bcrypt is CPU bound; keep it off the event loop.
        hashed_password = await asyncio.to_thread(self._hash_password, password)

        async with self._session_factory() as session:
            user = UserORM(username=username, password=hashed_password)
            session.add(user)
            try:
                await session.flush()
                user_id = user.id
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.debug(f"Insert of user {username!r} hit a constraint: {e.orig}")
                raise DuplicateUsername(username) from e

        logger.debug(f"Created user {username!r} with id {user_id}")
        return user_id

    async def get_user_id(self, username: str) -> Optional[int]:
        """Look up the id of an existing user, or None."""
        async with self._session_factory() as session:
            result = await session.execute(select(UserORM.id).where(UserORM.username == username))
            return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Subreddits
    # ------------------------------------------------------------------

    async def create_subreddit(self, name: str, description: Optional[str] = None) -> int:
        """
        Insert a new subreddit.

        Raises:
            DuplicateSubreddit: If a subreddit with this name already exists.
        """
        async with self._session_factory() as session:
            subreddit = SubredditORM(name=name, description=description)
            session.add(subreddit)
            try:
                await session.flush()
                subreddit_id = subreddit.id
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.debug(f"Insert of subreddit {name!r} hit a constraint: {e.orig}")
                raise DuplicateSubreddit(name) from e

        logger.debug(f"Created subreddit {name!r} with id {subreddit_id}")
        return subreddit_id

    async def get_subreddit_id(self, name: str) -> Optional[int]:
        async with self._session_factory() as session:
            result = await session.execute(select(SubredditORM.id).where(SubredditORM.name == name))
            return result.scalar_one_or_none()

    async def list_subreddits(self) -> List[SubredditDTO]:
        """All subreddits, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(SubredditORM).order_by(SubredditORM.created_at.desc(), SubredditORM.id.desc())
            )
            return [SubredditDTO.model_validate(row) for row in result.scalars().all()]

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def create_post(self, subreddit_id: int, user_id: int, title: str, url: str) -> int:
        """
        Insert a new post.

        Raises:
            MissingSubreddit: If ``subreddit_id`` does not reference an existing subreddit.
            MissingUser: If ``user_id`` does not reference an existing user.
        """
        async with self._session_factory() as session:
            post = PostORM(subreddit_id=subreddit_id, user_id=user_id, title=title, url=url)
            session.add(post)
            try:
                await session.flush()
                post_id = post.id
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if not await self._exists(session, SubredditORM, subreddit_id):
                    raise MissingSubreddit(subreddit_id) from e
                if not await self._exists(session, UserORM, user_id):
                    raise MissingUser(user_id) from e
                raise

        logger.debug(f"Created post {post_id} in subreddit {subreddit_id}")
        return post_id

    async def fetch_post_scores(self, limit: int = TOP_POSTS_PAGE_SIZE) -> List[PostScoreDTO]:
        """
        Posts with their summed vote score and author.

        Ordered by score descending, then creation time descending. Posts with no
        votes score 0.
        """
        vote_score = func.coalesce(func.sum(VoteORM.vote_direction), 0).label("vote_score")
        stmt = (
            select(PostORM, UserORM, vote_score)
            .join(UserORM, PostORM.user_id == UserORM.id)
            .join(SubredditORM, SubredditORM.id == PostORM.subreddit_id)
            .outerjoin(VoteORM, VoteORM.post_id == PostORM.id)
            .group_by(PostORM.id, UserORM.id)
            .order_by(vote_score.desc(), PostORM.created_at.desc(), PostORM.id.desc())
            .limit(limit)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return [
            PostScoreDTO(
                id=post.id,
                title=post.title,
                url=post.url,
                subreddit_id=post.subreddit_id,
                user_id=post.user_id,
                created_at=post.created_at,
                updated_at=post.updated_at,
                vote_score=int(score),
                user=PostAuthorDTO.model_validate(user),
            )
            for post, user, score in rows
        ]

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    async def upsert_vote(self, post_id: int, user_id: int, direction: int) -> None:
        """
        Insert a vote or overwrite the direction of the existing one.

        Raises:
            InvalidVote: If ``direction`` is not -1, 0 or 1. Nothing is written.
            MissingPost: If the post does not exist.
            MissingUser: If the user does not exist.
        """
        if isinstance(direction, bool) or not isinstance(direction, int) or direction not in VALID_VOTE_DIRECTIONS:
            raise InvalidVote(direction)

        votes = VoteORM.__table__
        async with self._session_factory() as session:
            insert = sqlite_insert if session.bind.dialect.name == "sqlite" else pg_insert
            stmt = insert(votes).values({"postId": post_id, "userId": user_id, "voteDirection": direction})
            stmt = stmt.on_conflict_do_update(
                index_elements=["postId", "userId"],
                set_={"voteDirection": stmt.excluded["voteDirection"], "updatedAt": func.now()},
            )
            try:
                await session.execute(stmt)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if not await self._exists(session, PostORM, post_id):
                    raise MissingPost(post_id) from e
                if not await self._exists(session, UserORM, user_id):
                    raise MissingUser(user_id) from e
                raise

        logger.debug(f"Recorded vote {direction:+d} by user {user_id} on post {post_id}")

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def create_comment(self, user_id: int, post_id: int, text: str, parent_id: Optional[int] = None) -> int:
        """
        Insert a comment. A parent, when given, must be a comment on the same post.

        Raises:
            MissingParentComment: If ``parent_id`` is not a comment on ``post_id``.
            MissingPost: If the post does not exist.
            MissingUser: If the user does not exist.
        """
        async with self._session_factory() as session:
            if parent_id is not None:
                parent_post_id = (
                    await session.execute(select(CommentORM.post_id).where(CommentORM.id == parent_id))
                ).scalar_one_or_none()
                if parent_post_id != post_id:
                    raise MissingParentComment(parent_id)

            comment = CommentORM(user_id=user_id, post_id=post_id, parent_id=parent_id, text=text)
            session.add(comment)
            try:
                await session.flush()
                comment_id = comment.id
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if not await self._exists(session, PostORM, post_id):
                    raise MissingPost(post_id) from e
                if not await self._exists(session, UserORM, user_id):
                    raise MissingUser(user_id) from e
                raise

        return comment_id

    async def fetch_direct_comments(self, post_id: int, parent_id: Optional[int]) -> List[CommentORM]:
        """
        Immediate children of ``parent_id`` under ``post_id`` in insertion order.
        ``parent_id=None`` returns the post's root comments.
        """
        stmt = select(CommentORM).where(CommentORM.post_id == post_id)
        if parent_id is None:
            stmt = stmt.where(CommentORM.parent_id.is_(None))
        else:
            stmt = stmt.where(CommentORM.parent_id == parent_id)
        stmt = stmt.order_by(CommentORM.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # ------------------------------------------------------------------

    @staticmethod
    async def _exists(session: AsyncSession, model: Type[Base], entity_id: Optional[int]) -> bool:
        if entity_id is None:
            return False
        result = await session.execute(select(model.id).where(model.id == entity_id))
        return result.scalar_one_or_none() is not None
