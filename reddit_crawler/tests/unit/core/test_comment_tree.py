import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from reddit_crawler.core.comment_tree import CommentTreeBuilder
from reddit_crawler.core.errors import CommentTreeError
from reddit_crawler.models import CommentORM

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _row(comment_id, parent_id, post_id=1):
    return SimpleNamespace(
        id=comment_id,
        post_id=post_id,
        user_id=1,
        parent_id=parent_id,
        text=f"comment {comment_id}",
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def endless_thread():
    """Every comment has exactly one reply, forever."""
    gateway = MagicMock()

    async def fetch(post_id, parent_id):
        return [_row((parent_id or 0) + 1, parent_id, post_id)]

    gateway.fetch_direct_comments = AsyncMock(side_effect=fetch)
    return gateway


async def _seed_thread(gateway):
    """
    post
    ├── a
    │   ├── a1
    │   │   └── a1x
    │   └── a2
    └── b
    """
    user_id = await gateway.create_user("alice", "abc123")
    subreddit_id = await gateway.create_subreddit("python")
    post_id = await gateway.create_post(subreddit_id, user_id, "title", "https://example.com")
    a = await gateway.create_comment(user_id, post_id, "a")
    b = await gateway.create_comment(user_id, post_id, "b")
    a1 = await gateway.create_comment(user_id, post_id, "a1", parent_id=a)
    a2 = await gateway.create_comment(user_id, post_id, "a2", parent_id=a)
    await gateway.create_comment(user_id, post_id, "a1x", parent_id=a1)
    return post_id, a, b, a1, a2


@pytest.mark.asyncio
async def test_single_level_returns_roots_without_replies(gateway):
    post_id, a, b, _, _ = await _seed_thread(gateway)

    forest = await CommentTreeBuilder(gateway).build(post_id, 1)

    assert [node.id for node in forest] == [a, b]
    assert all(node.replies == [] for node in forest)


@pytest.mark.asyncio
async def test_two_levels_stop_before_grandchildren(gateway):
    post_id, a, b, a1, a2 = await _seed_thread(gateway)

    forest = await CommentTreeBuilder(gateway, max_concurrency=2).build(post_id, 2)

    first, second = forest
    assert [reply.id for reply in first.replies] == [a1, a2]
    assert all(reply.replies == [] for reply in first.replies)
    assert second.id == b and second.replies == []


@pytest.mark.asyncio
async def test_deep_tree_is_complete(gateway):
    post_id, _, _, a1, _ = await _seed_thread(gateway)

    forest = await CommentTreeBuilder(gateway).build(post_id, 5)

    a1_node = forest[0].replies[0]
    assert a1_node.id == a1
    assert [reply.text for reply in a1_node.replies] == ["a1x"]
    assert a1_node.replies[0].parent_id == a1


@pytest.mark.asyncio
async def test_post_without_comments_is_an_empty_forest(gateway):
    user_id = await gateway.create_user("alice", "abc123")
    subreddit_id = await gateway.create_subreddit("python")
    post_id = await gateway.create_post(subreddit_id, user_id, "quiet", "https://example.com")

    assert await CommentTreeBuilder(gateway).build(post_id, 3) == []


@pytest.mark.asyncio
async def test_no_reads_past_the_depth_bound(endless_thread):
    forest = await CommentTreeBuilder(endless_thread).build(1, 3)

    assert endless_thread.fetch_direct_comments.await_count == 3
    assert forest[0].replies[0].replies[0].replies == []


@pytest.mark.asyncio
@pytest.mark.parametrize("levels", [0, -1])
async def test_levels_below_one_rejected(endless_thread, levels):
    with pytest.raises(ValueError):
        await CommentTreeBuilder(endless_thread).build(1, levels)

    endless_thread.fetch_direct_comments.assert_not_awaited()


@pytest.mark.asyncio
async def test_read_failure_fails_the_whole_build(endless_thread):
    async def flaky(post_id, parent_id):
        if parent_id is not None:
            raise RuntimeError("connection lost")
        return [_row(1, None), _row(2, None)]

    endless_thread.fetch_direct_comments.side_effect = flaky

    with pytest.raises(CommentTreeError) as exc_info:
        await CommentTreeBuilder(endless_thread).build(1, 2)

    assert exc_info.value.post_id == 1
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_failed_build_leaves_no_reads_running(endless_thread):
    started = []

    async def fetch(post_id, parent_id):
        started.append(parent_id)
        if parent_id is None:
            return [_row(1, None), _row(2, None)]
        if parent_id == 1:
            raise RuntimeError("connection lost")
        if parent_id == 2:
            await asyncio.sleep(0.01)
            return [_row(20, 2), _row(21, 2)]
        return []

    endless_thread.fetch_direct_comments.side_effect = fetch

    with pytest.raises(CommentTreeError):
        await CommentTreeBuilder(endless_thread).build(1, 3)
    reads_at_failure = list(started)
    await asyncio.sleep(0.05)

    assert started == reads_at_failure
    assert 20 not in started and 21 not in started


@pytest.mark.asyncio
async def test_reply_filed_under_another_post_is_excluded(gateway, session_factory):
    user_id = await gateway.create_user("alice", "abc123")
    subreddit_id = await gateway.create_subreddit("python")
    post_id = await gateway.create_post(subreddit_id, user_id, "first", "https://example.com/1")
    other_post_id = await gateway.create_post(subreddit_id, user_id, "second", "https://example.com/2")
    root = await gateway.create_comment(user_id, post_id, "root")

    # Written directly; create_comment would refuse a parent from another post.
    async with session_factory() as session:
        session.add(CommentORM(user_id=user_id, post_id=other_post_id, parent_id=root, text="stray"))
        await session.commit()

    forest = await CommentTreeBuilder(gateway).build(post_id, 3)

    assert [(node.id, node.replies) for node in forest] == [(root, [])]
