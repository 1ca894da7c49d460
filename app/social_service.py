"""
Cross-repository social operations: follow/unfollow (two repositories per
edge) and feed aggregation over followed users.
"""
from typing import List, Optional

from app.config import Settings, settings as default_settings
from app.github_client import GitHubClient
from app.logger import get_logger, logged_operation
from app.models import OperationResult, Post, parse_timestamp
from app.registry import UserRegistryService
from app.social_data import SocialDataService

logger = get_logger(__name__)


def _split_repository(repository: str, default_repo: str):
    owner, _, repo = repository.partition("/")
    return owner, repo or default_repo


class SocialService:
    """
    Follow graph and feed. Both sides of an edge are written sequentially;
    nothing rolls back the first write when the second one fails.
    """

    def __init__(self, client: GitHubClient, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.data = SocialDataService(client, self.settings)
        self.registry = UserRegistryService(client, self.settings)

    async def _lookup_pair(self, current_username: str, target_username: str):
        target = await self.registry.find_user_by_username(target_username)
        if not target.success:
            return None, None, "Target user not found"
        current = await self.registry.find_user_by_username(current_username)
        if not current.success:
            return None, None, "Current user not found"
        return current.data, target.data, None

    @logged_operation("follow_user")
    async def follow_user(self, current_username: str, target_username: str) -> OperationResult:
        if current_username == target_username:
            return OperationResult.fail("Cannot follow yourself")

        current, target, error = await self._lookup_pair(current_username, target_username)
        if error:
            return OperationResult.fail(error)

        followed = await self.data.follow_user(current_username, target_username, target.handle)
        if not followed.success:
            return OperationResult.fail("Failed to update following list")

        follower = await self.data.add_follower(target_username, current_username, current.handle)
        if not follower.success:
            logger.warning(
                f"Failed to update {target_username}'s followers list, "
                f"but {current_username} now follows them"
            )

        return OperationResult.ok()

    @logged_operation("unfollow_user")
    async def unfollow_user(self, current_username: str, target_username: str) -> OperationResult:
        current, target, error = await self._lookup_pair(current_username, target_username)
        if error:
            return OperationResult.fail(error)

        removed = await self.data.remove_following(current_username, target.handle)
        if not removed.success:
            return OperationResult.fail("Failed to update following list")

        follower = await self.data.remove_follower(target_username, current.handle)
        if not follower.success:
            logger.warning(
                f"Failed to update {target_username}'s followers list, "
                f"but {current_username} no longer follows them"
            )

        return OperationResult.ok()

    @logged_operation("get_feed_data")
    async def get_feed_data(self, username: str, limit: Optional[int] = None) -> OperationResult:
        """
        Posts of everyone ``username`` follows plus their own, newest first.

        Followed repositories are read one after another; any that cannot be
        read (deleted, renamed, private) are skipped.
        """
        following = await self.data.get_following(username)
        if not following.success:
            return OperationResult.fail("Failed to get following list")

        sources = []
        for follow in following.data.following:
            sources.append(_split_repository(follow.repository, self.settings.social_repo_name))
        sources.append((username, self.settings.social_repo_name))

        all_posts: List[Post] = []
        seen = set()
        for owner, repo in sources:
            result = await self.data.get_user_posts(owner, repo)
            if not result.success:
                logger.warning(f"Failed to get posts for {owner}/{repo}: {result.error}")
                continue
            for post in result.data:
                key = (post.author, post.id)
                if key in seen:
                    continue
                seen.add(key)
                all_posts.append(post)

        all_posts.sort(key=lambda p: parse_timestamp(p.created_at), reverse=True)
        if limit:
            all_posts = all_posts[:limit]
        return OperationResult.ok(all_posts)
