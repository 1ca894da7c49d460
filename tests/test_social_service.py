"""Tests for follow/unfollow and feed aggregation."""
import json

import pytest

from app.models import Post, parse_timestamp
from app.social_data import FOLLOWERS_PATH, FOLLOWING_PATH, SocialDataService, post_path
from app.social_service import SocialService

REPO = "open-social-data"


def following(github, owner):
    return json.loads(github.files[(owner, REPO, FOLLOWING_PATH)][0])


def followers(github, owner):
    return json.loads(github.files[(owner, REPO, FOLLOWERS_PATH)][0])


def seed_post(github, owner, post_id, created_at):
    post = Post(id=post_id, content=f"post {post_id}", created_at=created_at, author=owner)
    path = post_path(post_id, parse_timestamp(created_at))
    github.files[(owner, REPO, path)] = (json.dumps(post.to_json_dict()), f"seed-{post_id}")


@pytest.fixture
def social(github, settings):
    return SocialService(github, settings)


class TestFollow:
    @pytest.mark.asyncio
    async def test_follow_updates_both_repositories(self, social, github, make_user):
        await make_user("alice", 1)
        await make_user("bob", 2)

        result = await social.follow_user("alice", "bob")

        assert result.success
        assert [f["handle"] for f in following(github, "alice")["following"]] == ["@bob.github.io"]
        assert [f["handle"] for f in followers(github, "bob")["followers"]] == ["@alice.github.io"]

    @pytest.mark.asyncio
    async def test_follow_then_unfollow_restores_lists(self, social, github, make_user):
        await make_user("alice", 1)
        await make_user("bob", 2)
        await make_user("carol", 3)
        await social.follow_user("alice", "carol")
        before = following(github, "alice")

        await social.follow_user("alice", "bob")
        result = await social.unfollow_user("alice", "bob")

        assert result.success
        assert following(github, "alice") == before
        assert followers(github, "bob") == {"followers": []}

    @pytest.mark.asyncio
    async def test_cannot_follow_yourself(self, social, make_user):
        await make_user("alice", 1)
        result = await social.follow_user("alice", "alice")
        assert result.error == "Cannot follow yourself"

    @pytest.mark.asyncio
    async def test_unknown_target(self, social, make_user):
        await make_user("alice", 1)
        result = await social.follow_user("alice", "ghost")
        assert result.error == "Target user not found"

    @pytest.mark.asyncio
    async def test_unregistered_current_user(self, social, make_user):
        await make_user("bob", 2)
        result = await social.follow_user("alice", "bob")
        assert result.error == "Current user not found"

    @pytest.mark.asyncio
    async def test_followers_failure_is_not_fatal(self, social, github, make_user):
        await make_user("alice", 1)
        await make_user("bob", 2)
        github.failing_writes.add(("bob", FOLLOWERS_PATH))

        result = await social.follow_user("alice", "bob")

        assert result.success
        assert len(following(github, "alice")["following"]) == 1
        assert followers(github, "bob") == {"followers": []}

    @pytest.mark.asyncio
    async def test_following_failure_is_fatal(self, social, github, make_user):
        await make_user("alice", 1)
        await make_user("bob", 2)
        github.failing_writes.add(("alice", FOLLOWING_PATH))

        result = await social.follow_user("alice", "bob")

        assert not result.success
        assert followers(github, "bob") == {"followers": []}


class TestFeed:
    @pytest.mark.asyncio
    async def test_feed_merges_followed_and_own_posts_newest_first(self, social, github, settings, make_user):
        for i, login in enumerate(["alice", "bob", "carol", "dave"], start=1):
            await make_user(login, i)
        await social.follow_user("alice", "bob")
        await social.follow_user("alice", "carol")

        seed_post(github, "bob", "bob-1", "2025-03-04T09:00:00.000Z")
        seed_post(github, "carol", "carol-1", "2025-03-03T12:00:00.000Z")
        seed_post(github, "alice", "alice-1", "2025-03-03T18:30:00.000Z")
        seed_post(github, "bob", "bob-2", "2025-02-27T07:15:00.000Z")
        seed_post(github, "carol", "carol-2", "2025-03-05T00:00:00.000Z")
        seed_post(github, "alice", "alice-2", "2025-01-10T10:00:00.000Z")
        seed_post(github, "dave", "dave-1", "2025-03-06T00:00:00.000Z")

        result = await social.get_feed_data("alice")

        assert result.success
        assert [p.id for p in result.data] == [
            "carol-2", "bob-1", "alice-1", "carol-1", "bob-2", "alice-2",
        ]

    @pytest.mark.asyncio
    async def test_feed_skips_deleted_repository(self, social, github, settings, make_user):
        await make_user("alice", 1)
        await make_user("bob", 2)
        await social.follow_user("alice", "bob")
        await SocialDataService(github, settings).create_post("alice", "still here")
        github.repos.pop(("bob", REPO))
        for key in [k for k in github.files if k[0] == "bob"]:
            github.files.pop(key)

        result = await social.get_feed_data("alice")

        assert result.success
        assert [p.content for p in result.data] == ["still here"]

    @pytest.mark.asyncio
    async def test_feed_limit(self, social, settings, make_user, github):
        await make_user("alice", 1)
        data = SocialDataService(github, settings)
        for n in range(3):
            await data.create_post("alice", f"post {n}")

        result = await social.get_feed_data("alice", limit=2)

        assert len(result.data) == 2

    @pytest.mark.asyncio
    async def test_feed_requires_following_list(self, social):
        result = await social.get_feed_data("nobody")
        assert not result.success
