"""
Depth-bounded assembly of a post's comment forest from the flat comments table.
"""

import asyncio
import logging
from contextlib import nullcontext
from typing import List, Optional

from reddit_crawler.core.errors import CommentTreeError
from reddit_crawler.core.gateway import EntityStoreGateway
from reddit_crawler.models import CommentNode

logger = logging.getLogger(__name__)


class CommentTreeBuilder:
    """
    Builds ``CommentNode`` forests.

    ``levels`` counts tree levels from the post: ``levels=1`` returns root
    comments only, ``levels=L`` returns roots plus ``L - 1`` levels of replies.
    Sibling subtrees are fetched concurrently; a node is only handed back once
    its whole bounded subtree has been fetched.
    """

    def __init__(self, gateway: EntityStoreGateway, max_concurrency: Optional[int] = None):
        """
        Args:
            gateway: Store the comments are read from.
            max_concurrency: Optional cap on simultaneous store reads.
        """
        self.gateway = gateway
        self._gate = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def build(self, post_id: int, levels: int) -> List[CommentNode]:
        """
        Return the comment forest of ``post_id`` down to ``levels`` levels.

        Raises:
            ValueError: If ``levels`` is smaller than 1.
            CommentTreeError: If any read fails; no partial tree is returned.
        """
        if levels < 1:
            raise ValueError(f"levels must be at least 1, got {levels}")

        try:
            forest = await self._fetch_level(post_id, None, levels)
        except Exception as e:
            logger.error(f"Failed to build comment tree for post {post_id}: {e}", exc_info=True)
            raise CommentTreeError(post_id) from e

        logger.debug(f"Built comment tree for post {post_id}: {len(forest)} root comment(s), levels={levels}")
        return forest

    async def _fetch_level(self, post_id: int, parent_id: Optional[int], remaining: int) -> List[CommentNode]:
        async with self._gate if self._gate is not None else nullcontext():
            rows = await self.gateway.fetch_direct_comments(post_id, parent_id)
        if not rows:
            return []

        if remaining > 1:
            subtrees = await self._fetch_subtrees(post_id, [row.id for row in rows], remaining - 1)
        else:
            subtrees = [[] for _ in rows]

        return [
            CommentNode(
                id=row.id,
                post_id=row.post_id,
                user_id=row.user_id,
                parent_id=row.parent_id,
                text=row.text,
                created_at=row.created_at,
                updated_at=row.updated_at,
                replies=replies,
            )
            for row, replies in zip(rows, subtrees)
        ]

    async def _fetch_subtrees(self, post_id: int, parent_ids: List[int], remaining: int) -> List[List[CommentNode]]:
        """Fetch sibling subtrees concurrently; if one fails, cancel and drain the rest before raising."""
        tasks = [asyncio.create_task(self._fetch_level(post_id, parent_id, remaining)) for parent_id in parent_ids]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
