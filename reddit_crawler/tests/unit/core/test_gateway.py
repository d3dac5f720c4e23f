import bcrypt
import pytest
from sqlalchemy import select

from reddit_crawler.core.errors import (
    DuplicateSubreddit,
    DuplicateUsername,
    InvalidVote,
    MissingParentComment,
    MissingPost,
    MissingSubreddit,
    MissingUser,
)
from reddit_crawler.models import UserORM, VoteORM


async def _seed_post(gateway, username="alice", subreddit="python"):
    user_id = await gateway.create_user(username, "abc123")
    subreddit_id = await gateway.create_subreddit(subreddit)
    post_id = await gateway.create_post(subreddit_id, user_id, "A title", "https://example.com/a")
    return user_id, subreddit_id, post_id


@pytest.mark.asyncio
async def test_create_user_stores_bcrypt_hash(gateway, session_factory):
    user_id = await gateway.create_user("alice", "abc123")

    async with session_factory() as session:
        stored = (await session.execute(select(UserORM.password).where(UserORM.id == user_id))).scalar_one()

    assert stored != "abc123"
    assert bcrypt.checkpw(b"abc123", stored.encode("utf-8"))


@pytest.mark.asyncio
async def test_duplicate_username_raises_and_lookup_returns_first_id(gateway):
    first_id = await gateway.create_user("alice", "abc123")

    with pytest.raises(DuplicateUsername) as exc_info:
        await gateway.create_user("alice", "other")

    assert exc_info.value.key == "alice"
    assert await gateway.get_user_id("alice") == first_id
    assert await gateway.get_user_id("nobody") is None


@pytest.mark.asyncio
async def test_duplicate_subreddit_raises(gateway):
    subreddit_id = await gateway.create_subreddit("python", "All things Python")

    with pytest.raises(DuplicateSubreddit):
        await gateway.create_subreddit("python")

    assert await gateway.get_subreddit_id("python") == subreddit_id


@pytest.mark.asyncio
async def test_list_subreddits_newest_first(gateway):
    await gateway.create_subreddit("first")
    await gateway.create_subreddit("second", "described")

    rows = await gateway.list_subreddits()

    assert [row.name for row in rows] == ["second", "first"]
    assert rows[0].description == "described"
    assert rows[1].description is None


@pytest.mark.asyncio
async def test_create_post_with_unknown_subreddit(gateway):
    user_id = await gateway.create_user("alice", "abc123")

    with pytest.raises(MissingSubreddit) as exc_info:
        await gateway.create_post(999, user_id, "title", "https://example.com")

    assert exc_info.value.entity_id == 999


@pytest.mark.asyncio
async def test_create_post_with_unknown_user(gateway):
    subreddit_id = await gateway.create_subreddit("python")

    with pytest.raises(MissingUser):
        await gateway.create_post(subreddit_id, 999, "title", "https://example.com")


@pytest.mark.asyncio
async def test_upsert_vote_overwrites_direction(gateway, session_factory):
    user_id, _, post_id = await _seed_post(gateway)

    await gateway.upsert_vote(post_id, user_id, 1)
    await gateway.upsert_vote(post_id, user_id, -1)

    async with session_factory() as session:
        votes = (await session.execute(select(VoteORM))).scalars().all()

    assert len(votes) == 1
    assert votes[0].vote_direction == -1


@pytest.mark.asyncio
@pytest.mark.parametrize("direction", [2, -2, True, "1", None])
async def test_upsert_vote_rejects_invalid_direction(gateway, session_factory, direction):
    user_id, _, post_id = await _seed_post(gateway)

    with pytest.raises(InvalidVote):
        await gateway.upsert_vote(post_id, user_id, direction)

    async with session_factory() as session:
        assert (await session.execute(select(VoteORM))).scalars().all() == []


@pytest.mark.asyncio
async def test_upsert_vote_on_missing_post_or_user(gateway):
    user_id, _, post_id = await _seed_post(gateway)

    with pytest.raises(MissingPost):
        await gateway.upsert_vote(999, user_id, 1)
    with pytest.raises(MissingUser):
        await gateway.upsert_vote(post_id, 999, 1)


@pytest.mark.asyncio
async def test_fetch_post_scores_orders_by_score_and_counts_unvoted_as_zero(gateway):
    alice, subreddit_id, downvoted = await _seed_post(gateway)
    bob = await gateway.create_user("bob", "abc123")
    upvoted = await gateway.create_post(subreddit_id, bob, "Popular", "https://example.com/b")
    unvoted = await gateway.create_post(subreddit_id, bob, "Ignored", "https://example.com/c")

    await gateway.upsert_vote(upvoted, alice, 1)
    await gateway.upsert_vote(upvoted, bob, 1)
    await gateway.upsert_vote(downvoted, bob, -1)

    posts = await gateway.fetch_post_scores()

    assert [p.id for p in posts] == [upvoted, unvoted, downvoted]
    assert [p.vote_score for p in posts] == [2, 0, -1]
    assert posts[0].user.username == "bob"
    assert posts[2].user.id == alice
    assert posts[0].subreddit_id == subreddit_id


@pytest.mark.asyncio
async def test_fetch_post_scores_respects_limit(gateway):
    user_id, subreddit_id, _ = await _seed_post(gateway)
    for i in range(4):
        await gateway.create_post(subreddit_id, user_id, f"post {i}", f"https://example.com/{i}")

    assert len(await gateway.fetch_post_scores(limit=3)) == 3
    assert len(await gateway.fetch_post_scores()) == 5


@pytest.mark.asyncio
async def test_create_comment_and_fetch_direct_children(gateway):
    user_id, _, post_id = await _seed_post(gateway)
    root = await gateway.create_comment(user_id, post_id, "root")
    reply = await gateway.create_comment(user_id, post_id, "reply", parent_id=root)
    second_root = await gateway.create_comment(user_id, post_id, "second root")

    roots = await gateway.fetch_direct_comments(post_id, None)
    children = await gateway.fetch_direct_comments(post_id, root)

    assert [c.id for c in roots] == [root, second_root]
    assert [c.id for c in children] == [reply]
    assert children[0].parent_id == root


@pytest.mark.asyncio
async def test_create_comment_parent_must_belong_to_same_post(gateway):
    user_id, subreddit_id, post_id = await _seed_post(gateway)
    other_post = await gateway.create_post(subreddit_id, user_id, "Other", "https://example.com/other")
    parent = await gateway.create_comment(user_id, post_id, "parent")

    with pytest.raises(MissingParentComment):
        await gateway.create_comment(user_id, other_post, "misplaced", parent_id=parent)
    with pytest.raises(MissingParentComment):
        await gateway.create_comment(user_id, post_id, "orphan", parent_id=999)


@pytest.mark.asyncio
async def test_create_comment_on_missing_post(gateway):
    user_id = await gateway.create_user("alice", "abc123")

    with pytest.raises(MissingPost):
        await gateway.create_comment(user_id, 999, "hello")
