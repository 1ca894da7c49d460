"""
Social-data repository service.

Translates application operations (initialise repository, create post,
follow, like, read posts) into sequences of GitHub contents API calls
against a user's social-data repository:

    <login>/<social_repo_name>
    ├── .gitsocial/config.json
    ├── profile.json
    ├── posts/<YYYY>/<MM>/<post id>.json
    ├── media/
    └── social/{following,followers,likes}.json
"""
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic.alias_generators import to_camel

from app.config import Settings, settings as default_settings
from app.documents import DocumentStore, dumps
from app.github_client import ContentEntry, GitHubAPIError, GitHubClient, GitHubNotFoundError
from app.logger import get_logger, logged_operation
from app.models import (
    FollowEntry,
    FollowersList,
    FollowingList,
    LikeEntry,
    LikesList,
    OperationResult,
    Post,
    Profile,
    RepoConfig,
    format_timestamp,
    parse_timestamp,
)
from app.text_utils import extract_hashtags, extract_mentions, generate_post_id

logger = get_logger(__name__)

CONFIG_PATH = ".gitsocial/config.json"
PROFILE_PATH = "profile.json"
FOLLOWING_PATH = "social/following.json"
FOLLOWERS_PATH = "social/followers.json"
LIKES_PATH = "social/likes.json"
POSTS_DIR = "posts"
MEDIA_DIR = "media"

PROFILE_EDITABLE_FIELDS = {"display_name", "bio", "avatar", "website", "location"}


def post_path(post_id: str, created_at: datetime) -> str:
    return f"{POSTS_DIR}/{created_at:%Y}/{created_at:%m}/{post_id}.json"


def _is_json_file(entry: ContentEntry) -> bool:
    return entry.type == "file" and entry.name.endswith(".json")


def _newest_first(entries: List[ContentEntry]) -> List[ContentEntry]:
    return sorted(entries, key=lambda e: e.name, reverse=True)


def _add_edge(key: str, entry: FollowEntry):
    def mutate(data: Dict[str, Any]) -> bool:
        items = data.setdefault(key, [])
        if any(item.get("handle") == entry.handle for item in items):
            return False
        items.append(entry.to_json_dict())
        return True
    return mutate


def _remove_edge(key: str, handle: str):
    def mutate(data: Dict[str, Any]) -> bool:
        items = data.get(key, [])
        kept = [item for item in items if item.get("handle") != handle]
        if len(kept) == len(items):
            return False
        data[key] = kept
        return True
    return mutate


class SocialDataService:
    """
    Operations on one or more users' social-data repositories, performed
    with the caller's GitHub token.
    """

    def __init__(self, client: GitHubClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or default_settings
        self.store = DocumentStore(client, self.settings)

    @property
    def repo_name(self) -> str:
        return self.settings.social_repo_name

    # ── Repository lifecycle ──────────────────────────────────────────────

    @logged_operation("create_social_data_repository")
    async def create_social_data_repository(self, username: str) -> OperationResult:
        try:
            data = await self.client.create_repository(
                self.repo_name,
                description=f"{username}'s distributed social media data repository",
                private=False,
                auto_init=False,
            )
        except GitHubAPIError as e:
            logger.error(f"Error creating repository for {username}: {e}")
            return OperationResult.fail("Failed to create repository")
        return OperationResult.ok(data)

    @logged_operation("initialize_social_data_repository")
    async def initialize_social_data_repository(self, username: str, profile: Profile) -> OperationResult:
        """
        Write the initial directory structure, one commit per file.
        A failure part-way leaves the files written so far in place.
        """
        files = [
            (CONFIG_PATH, dumps(RepoConfig(app_url=self.settings.app_url).to_json_dict())),
            (PROFILE_PATH, dumps(profile.to_json_dict())),
            (FOLLOWING_PATH, dumps(FollowingList().to_json_dict())),
            (FOLLOWERS_PATH, dumps(FollowersList().to_json_dict())),
            (LIKES_PATH, dumps(LikesList().to_json_dict())),
            (f"{POSTS_DIR}/README.md",
             "# Posts\n\nThis directory contains all posts as JSON files organized by date."),
            (f"{MEDIA_DIR}/README.md",
             "# Media\n\nThis directory contains uploaded media files."),
        ]

        try:
            for path, content in files:
                await self.client.put_file(
                    username, self.repo_name, path, content, f"Initialize {path}"
                )
        except GitHubAPIError as e:
            logger.error(f"Error initializing repository for {username}: {e}")
            return OperationResult.fail("Failed to initialize repository")
        return OperationResult.ok()

    # ── Posts ─────────────────────────────────────────────────────────────

    @logged_operation("create_post")
    async def create_post(
        self,
        username: str,
        content: str,
        media: Optional[List[str]] = None,
        mentions: Optional[List[str]] = None,
        hashtags: Optional[List[str]] = None,
        reply_to: Optional[str] = None,
        post_id: Optional[str] = None,
    ) -> OperationResult:
        """
        Commit a new post file under ``posts/<YYYY>/<MM>/``.

        Returns:
            OperationResult with ``data={"filename": path, "post": Post}``.
        """
        now = datetime.now(timezone.utc)
        post = Post(
            id=post_id or generate_post_id(),
            type="reply" if reply_to else "post",
            content=content,
            created_at=format_timestamp(now),
            author=username,
            media=media or [],
            reply_to=reply_to,
            mentions=mentions if mentions is not None else extract_mentions(content),
            hashtags=hashtags if hashtags is not None else extract_hashtags(content),
        )
        filename = post_path(post.id, now)

        try:
            await self.store.write_json(
                username, self.repo_name, filename, post.to_json_dict(), f"Add new post: {post.id}"
            )
        except GitHubAPIError as e:
            logger.error(f"Error creating post for {username}: {e}")
            return OperationResult.fail("Failed to create post")
        return OperationResult.ok({"filename": filename, "post": post})

    async def _list_json_files(self, owner: str, repo: str, path: str) -> List[ContentEntry]:
        entries = await self.client.list_directory(owner, repo, path)
        return _newest_first([e for e in entries if _is_json_file(e)])

    async def _recent_post_files(self, owner: str, repo: str, limit: int) -> List[ContentEntry]:
        """
        Walk ``posts/<YYYY>/<MM>`` newest first, bounded by the configured
        number of years and months. Flat ``posts/*.json`` files from the
        older layout fill any remaining room.
        """
        entries = await self.client.list_directory(owner, repo, POSTS_DIR)
        years = _newest_first([e for e in entries if e.type == "dir" and e.name.isdigit()])
        flat = _newest_first([e for e in entries if _is_json_file(e)])

        selected: List[ContentEntry] = []
        for year in years[: self.settings.feed_max_years]:
            if len(selected) >= limit:
                break
            try:
                months = _newest_first([
                    e for e in await self.client.list_directory(owner, repo, year.path)
                    if e.type == "dir"
                ])
            except GitHubAPIError as e:
                logger.warning(f"Error reading {owner}/{repo}:{year.path}: {e}")
                continue

            for month in months[: self.settings.feed_max_months]:
                if len(selected) >= limit:
                    break
                try:
                    files = await self._list_json_files(owner, repo, month.path)
                except GitHubAPIError as e:
                    logger.warning(f"Error reading {owner}/{repo}:{month.path}: {e}")
                    continue
                selected.extend(files[: limit - len(selected)])

        selected.extend(flat[: max(0, limit - len(selected))])
        return selected

    async def get_user_posts(
        self, owner: str, repo: Optional[str] = None, limit: Optional[int] = None
    ) -> OperationResult:
        """
        Read a user's most recent posts.

        Returns:
            OperationResult with a list of Post, newest first. A repository
            without a posts directory yields an empty list.
        """
        repo = repo or self.repo_name
        limit = limit or self.settings.posts_per_user_limit

        try:
            files = await self._recent_post_files(owner, repo, limit)
        except GitHubNotFoundError:
            return OperationResult.ok([])
        except GitHubAPIError as e:
            logger.error(f"Error getting posts for {owner}/{repo}: {e}")
            return OperationResult.fail("Failed to get posts")

        posts: List[Post] = []
        for entry in files:
            try:
                file = await self.client.get_file(owner, repo, entry.path)
                posts.append(Post.model_validate(json.loads(file.content)))
            except (GitHubAPIError, ValueError) as e:
                logger.warning(f"Error fetching post {owner}/{repo}:{entry.path}: {e}")

        posts.sort(key=lambda p: parse_timestamp(p.created_at), reverse=True)
        return OperationResult.ok(posts)

    # ── Profile ───────────────────────────────────────────────────────────

    async def get_user_profile(self, username: str) -> OperationResult:
        try:
            doc = await self.store.read_json(username, self.repo_name, PROFILE_PATH)
            return OperationResult.ok(Profile.model_validate(doc.data))
        except GitHubNotFoundError:
            return OperationResult.fail("File not found")
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error getting profile for {username}: {e}")
            return OperationResult.fail("Failed to get user profile")

    @logged_operation("update_user_profile")
    async def update_user_profile(self, username: str, changes: Dict[str, Any]) -> OperationResult:
        """Update the editable profile fields; other keys are ignored."""
        updates = {
            to_camel(name): value
            for name, value in changes.items()
            if name in PROFILE_EDITABLE_FIELDS and value is not None
        }

        def mutate(data: Dict[str, Any]) -> bool:
            changed = any(data.get(key) != value for key, value in updates.items())
            data.update(updates)
            return changed

        try:
            doc = await self.store.update_json(
                username, self.repo_name, PROFILE_PATH, mutate, "Update profile"
            )
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error updating profile for {username}: {e}")
            return OperationResult.fail("Failed to update profile")
        return OperationResult.ok(Profile.model_validate(doc.data))

    # ── Social graph ──────────────────────────────────────────────────────

    async def get_following(self, username: str) -> OperationResult:
        try:
            doc = await self.store.read_json(username, self.repo_name, FOLLOWING_PATH)
            return OperationResult.ok(FollowingList.model_validate(doc.data))
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error getting following list for {username}: {e}")
            return OperationResult.fail("Failed to get following list")

    async def get_followers(self, username: str) -> OperationResult:
        try:
            doc = await self.store.read_json(username, self.repo_name, FOLLOWERS_PATH)
            return OperationResult.ok(FollowersList.model_validate(doc.data))
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error getting followers list for {username}: {e}")
            return OperationResult.fail("Failed to get followers list")

    async def _mutate_list(
        self, owner: str, path: str, key: str, mutate, message: str, error: str
    ) -> OperationResult:
        try:
            await self.store.update_json(
                owner, self.repo_name, path, mutate, message, default=lambda: {key: []}
            )
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"{error} ({owner}): {e}")
            return OperationResult.fail(error)
        return OperationResult.ok()

    async def follow_user(self, username: str, target_user: str, target_handle: str) -> OperationResult:
        """Add ``target_handle`` to the user's own following list."""
        entry = FollowEntry(
            handle=target_handle,
            repository=self.settings.social_repository_for(target_user),
        )
        return await self._mutate_list(
            username, FOLLOWING_PATH, "following",
            _add_edge("following", entry),
            f"Follow {target_handle}",
            "Failed to follow user",
        )

    async def add_follower(self, username: str, follower_user: str, follower_handle: str) -> OperationResult:
        """Add ``follower_handle`` to ``username``'s followers list."""
        entry = FollowEntry(
            handle=follower_handle,
            repository=self.settings.social_repository_for(follower_user),
        )
        return await self._mutate_list(
            username, FOLLOWERS_PATH, "followers",
            _add_edge("followers", entry),
            f"Add follower {follower_handle}",
            "Failed to add follower",
        )

    async def remove_following(self, username: str, target_handle: str) -> OperationResult:
        return await self._mutate_list(
            username, FOLLOWING_PATH, "following",
            _remove_edge("following", target_handle),
            f"Unfollow {target_handle}",
            "Failed to update following list",
        )

    async def remove_follower(self, username: str, follower_handle: str) -> OperationResult:
        return await self._mutate_list(
            username, FOLLOWERS_PATH, "followers",
            _remove_edge("followers", follower_handle),
            f"Remove follower {follower_handle}",
            "Failed to update followers list",
        )

    # ── Likes ─────────────────────────────────────────────────────────────

    async def like_post(self, username: str, post_id: str) -> OperationResult:
        def mutate(data: Dict[str, Any]) -> bool:
            likes = data.setdefault("likes", [])
            if any(item.get("postId") == post_id for item in likes):
                return False
            likes.append(LikeEntry(post_id=post_id).to_json_dict())
            return True

        return await self._mutate_list(
            username, LIKES_PATH, "likes", mutate, f"Like {post_id}", "Failed to like post"
        )

    async def unlike_post(self, username: str, post_id: str) -> OperationResult:
        def mutate(data: Dict[str, Any]) -> bool:
            likes = data.get("likes", [])
            kept = [item for item in likes if item.get("postId") != post_id]
            if len(kept) == len(likes):
                return False
            data["likes"] = kept
            return True

        return await self._mutate_list(
            username, LIKES_PATH, "likes", mutate, f"Unlike {post_id}", "Failed to unlike post"
        )

    async def get_likes(self, username: str) -> OperationResult:
        try:
            doc = await self.store.read_json_or_default(
                username, self.repo_name, LIKES_PATH, default=lambda: {"likes": []}
            )
            return OperationResult.ok(LikesList.model_validate(doc.data))
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error getting likes for {username}: {e}")
            return OperationResult.fail("Failed to get likes")
