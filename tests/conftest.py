"""Pytest configuration and fixtures."""
import itertools
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from app.config import Settings
from app.github_client import (
    ContentEntry,
    ContentFile,
    GitHubAPIError,
    GitHubConflictError,
    GitHubNotFoundError,
)
from app.models import Profile, UserRegistration
from app.registry import UserRegistryService
from app.social_data import SocialDataService


class FakeGitHubClient:
    """
    In-memory stand-in for GitHubClient. Files live in a dict keyed by
    ``(owner, repo, path)`` and carry a sha that changes on every write, so
    stale writes fail the way GitHub's precondition does.
    """

    def __init__(self, login: str = "alice", github_id: int = 1):
        self.user: Dict[str, Any] = {
            "login": login,
            "id": github_id,
            "name": login.title(),
            "email": f"{login}@example.com",
            "avatar_url": f"https://avatars.example.com/{login}",
        }
        self.scopes: List[str] = ["read:user", "user:email", "public_repo", "repo:status"]
        self.repos: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.files: Dict[Tuple[str, str, str], Tuple[str, str]] = {}
        self.collaborators: Set[Tuple[str, str, str]] = set()
        self.failing_writes: Set[Tuple[str, str]] = set()
        self.pending_conflicts: Dict[str, int] = {}
        self.commits: List[Tuple[str, str, str]] = []
        self.secured: List[Tuple[str, str]] = []
        self._shas = itertools.count(1)
        self.closed = False

    def as_user(self, login: str, github_id: int) -> "FakeGitHubClient":
        """Another user's client over the same storage."""
        other = FakeGitHubClient(login, github_id)
        other.repos = self.repos
        other.files = self.files
        other.collaborators = self.collaborators
        other.failing_writes = self.failing_writes
        other.pending_conflicts = self.pending_conflicts
        other.commits = self.commits
        other.secured = self.secured
        other._shas = self._shas
        return other

    def _next_sha(self) -> str:
        return f"sha{next(self._shas)}"

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> "FakeGitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # users and repositories

    async def get_authenticated_user(self):
        return dict(self.user), list(self.scopes)

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        if (owner, repo) not in self.repos:
            raise GitHubNotFoundError(404, "Not Found")
        return self.repos[(owner, repo)]

    async def repository_exists(self, owner: str, repo: str) -> bool:
        return (owner, repo) in self.repos

    def add_repository(self, owner: str, repo: str) -> None:
        self.repos[(owner, repo)] = {
            "name": repo,
            "full_name": f"{owner}/{repo}",
            "owner": {"login": owner},
        }

    async def create_repository(self, name: str, description: str = "", private: bool = False,
                                auto_init: bool = False) -> Dict[str, Any]:
        self.add_repository(self.user["login"], name)
        return self.repos[(self.user["login"], name)]

    async def update_repository(self, owner: str, repo: str, **fields: Any) -> Dict[str, Any]:
        data = await self.get_repository(owner, repo)
        data.update(fields)
        return data

    async def update_branch_protection(self, owner, repo, branch, protection):
        await self.get_repository(owner, repo)
        return protection

    async def replace_topics(self, owner: str, repo: str, names: List[str]) -> List[str]:
        await self.get_repository(owner, repo)
        self.secured.append((owner, repo))
        return names

    async def check_collaborator(self, owner: str, repo: str, username: str) -> bool:
        return (owner, repo, username) in self.collaborators

    # contents

    async def get_file(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> ContentFile:
        key = (owner, repo, path)
        if key not in self.files:
            raise GitHubNotFoundError(404, "Not Found")
        content, sha = self.files[key]
        return ContentFile(path=path, sha=sha, content=content)

    async def list_directory(self, owner: str, repo: str, path: str = "",
                             ref: Optional[str] = None) -> List[ContentEntry]:
        prefix = f"{path.rstrip('/')}/" if path else ""
        children: Dict[str, ContentEntry] = {}
        for (o, r, file_path), (content, sha) in self.files.items():
            if (o, r) != (owner, repo) or not file_path.startswith(prefix):
                continue
            name, _, rest = file_path[len(prefix):].partition("/")
            kind = "dir" if rest else "file"
            children[name] = ContentEntry(
                name=name, path=f"{prefix}{name}", sha="" if rest else sha, type=kind
            )
        if not children:
            raise GitHubNotFoundError(404, "Not Found")
        return list(children.values())

    async def put_file(self, owner: str, repo: str, path: str, content: str, message: str,
                       sha: Optional[str] = None, branch: Optional[str] = None) -> str:
        if (owner, repo) not in self.repos:
            raise GitHubNotFoundError(404, "Not Found")
        if (owner, path) in self.failing_writes:
            raise GitHubAPIError(500, "Server Error")

        key = (owner, repo, path)
        if self.pending_conflicts.get(path):
            # another writer commits first
            self.pending_conflicts[path] -= 1
            current = self.files.get(key)
            if current:
                self.files[key] = (current[0], self._next_sha())
            raise GitHubConflictError(409, f"{path} does not match {sha}")

        current = self.files.get(key)
        if current and current[1] != sha:
            raise GitHubConflictError(409, f"{path} does not match {sha}")

        new_sha = self._next_sha()
        self.files[key] = (content, new_sha)
        self.commits.append((owner, path, message))
        return new_sha


@pytest.fixture
def settings() -> Settings:
    return Settings(
        registry_owner="gitsocial",
        registry_repo="registry",
        registry_branch="",
        social_repo_name="open-social-data",
        github_client_id="client-id",
        github_client_secret="client-secret",
        github_webhook_secret="webhook-secret",
        session_secret_key="test-session-key",
        admin_allowed_owners="alice",
        main_repo_owner="gitsocial",
        main_repo_name="open-social",
        write_retry_attempts=3,
        write_retry_wait_seconds=0,
        app_env="test",
    )


@pytest.fixture
def github() -> FakeGitHubClient:
    client = FakeGitHubClient("alice", 1)
    client.add_repository("gitsocial", "registry")
    return client


@pytest.fixture
def make_user(github: FakeGitHubClient, settings: Settings):
    """Provision a social-data repository and registry entry for a login."""

    async def _make(login: str, github_id: int) -> None:
        github.add_repository(login, settings.social_repo_name)
        data = SocialDataService(github, settings)
        profile = Profile(handle=settings.handle_for(login), display_name=login, github_id=str(github_id))
        await data.initialize_social_data_repository(login, profile)
        await UserRegistryService(github, settings).register_user(
            UserRegistration(
                github_id=str(github_id),
                username=login,
                handle=settings.handle_for(login),
                repository=settings.social_repository_for(login),
            )
        )

    return _make
