"""
GitHub REST API client – repositories, file contents, collaborators and webhooks.
One client is bound to one access token; all calls are async.
"""
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.config import Settings, settings as default_settings
from app.logger import get_logger

logger = get_logger(__name__)


# ── Errors ────────────────────────────────────────────────────────────────


class GitHubAPIError(Exception):
    """A GitHub API call returned an unexpected status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GitHubNotFoundError(GitHubAPIError):
    pass


class GitHubConflictError(GitHubAPIError):
    """The sha precondition of a contents write did not match."""


class GitHubPermissionError(GitHubAPIError):
    pass


class GitHubRateLimitError(GitHubPermissionError):
    pass


def _error_for(resp: httpx.Response) -> GitHubAPIError:
    try:
        message = resp.json().get("message", "") or resp.reason_phrase
    except ValueError:
        message = resp.text[:200] or resp.reason_phrase

    status = resp.status_code
    if status == 404:
        return GitHubNotFoundError(status, message)
    if status == 409 or (status == 422 and "sha" in message.lower()):
        return GitHubConflictError(status, message)
    if status in (403, 429) and (
        "rate limit" in message.lower() or resp.headers.get("x-ratelimit-remaining") == "0"
    ):
        return GitHubRateLimitError(status, message)
    if status in (401, 403):
        return GitHubPermissionError(status, message)
    return GitHubAPIError(status, message)


# ── Content types ─────────────────────────────────────────────────────────


@dataclass
class ContentEntry:
    """One item of a directory listing."""
    name: str
    path: str
    sha: str
    type: str
    size: int = 0
    download_url: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "ContentEntry":
        return cls(
            name=raw.get("name", ""),
            path=raw.get("path", ""),
            sha=raw.get("sha", ""),
            type=raw.get("type", "file"),
            size=raw.get("size", 0) or 0,
            download_url=raw.get("download_url"),
        )


@dataclass
class ContentFile:
    """A decoded file from the contents API."""
    path: str
    sha: str
    content: str


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_content(encoded: str) -> str:
    # The contents API wraps base64 at 60 columns
    return base64.b64decode(encoded.replace("\n", "")).decode("utf-8")


# ── Client ────────────────────────────────────────────────────────────────


class GitHubClient:
    """Thin async wrapper over the GitHub REST endpoints the app needs."""

    def __init__(self, token: Optional[str] = None, settings: Optional[Settings] = None) -> None:
        self.token = token
        self.settings = settings or default_settings
        self.base_url = self.settings.github_api_base.rstrip("/")
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def headers(self) -> Dict[str, str]:
        h = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.settings.github_api_version,
        }
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.settings.github_timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── HTTP plumbing ─────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        expected: Tuple[int, ...] = (200,),
        **kwargs: Any,
    ) -> httpx.Response:
        client = self._client_instance()
        resp = await client.request(method, path, **kwargs)
        if resp.status_code not in expected:
            error = _error_for(resp)
            logger.debug(f"{method} {path} -> {resp.status_code}: {error.message}")
            raise error
        return resp

    # ── Users ─────────────────────────────────────────────────────────────

    async def get_authenticated_user(self) -> Tuple[Dict[str, Any], List[str]]:
        """
        Fetch the token owner and the OAuth scopes granted to the token.

        Returns:
            Tuple of (user payload, scope names). Fine-grained tokens
            report no scopes.
        """
        resp = await self._request("GET", "/user")
        raw_scopes = resp.headers.get("x-oauth-scopes", "")
        scopes = [s.strip() for s in raw_scopes.split(",") if s.strip()]
        return resp.json(), scopes

    # ── Repositories ──────────────────────────────────────────────────────

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        resp = await self._request("GET", f"/repos/{owner}/{repo}")
        return resp.json()

    async def repository_exists(self, owner: str, repo: str) -> bool:
        try:
            await self.get_repository(owner, repo)
            return True
        except GitHubNotFoundError:
            return False

    async def create_repository(
        self,
        name: str,
        description: str = "",
        private: bool = False,
        auto_init: bool = False,
    ) -> Dict[str, Any]:
        """Create a repository owned by the authenticated user."""
        resp = await self._request(
            "POST",
            "/user/repos",
            expected=(201,),
            json={
                "name": name,
                "description": description,
                "private": private,
                "has_issues": False,
                "has_projects": False,
                "has_wiki": False,
                "auto_init": auto_init,
            },
        )
        logger.info(f"Created repository {name}")
        return resp.json()

    async def update_repository(self, owner: str, repo: str, **fields: Any) -> Dict[str, Any]:
        resp = await self._request("PATCH", f"/repos/{owner}/{repo}", json=fields)
        return resp.json()

    async def update_branch_protection(
        self, owner: str, repo: str, branch: str, protection: Dict[str, Any]
    ) -> Dict[str, Any]:
        resp = await self._request(
            "PUT", f"/repos/{owner}/{repo}/branches/{branch}/protection", json=protection
        )
        return resp.json()

    async def replace_topics(self, owner: str, repo: str, names: List[str]) -> List[str]:
        resp = await self._request("PUT", f"/repos/{owner}/{repo}/topics", json={"names": names})
        return resp.json().get("names", [])

    async def check_collaborator(self, owner: str, repo: str, username: str) -> bool:
        try:
            await self._request(
                "GET", f"/repos/{owner}/{repo}/collaborators/{username}", expected=(204,)
            )
            return True
        except GitHubNotFoundError:
            return False

    # ── Contents ──────────────────────────────────────────────────────────

    async def get_file(
        self, owner: str, repo: str, path: str, ref: Optional[str] = None
    ) -> ContentFile:
        """Fetch and decode a single file. Directories are rejected."""
        params = {"ref": ref} if ref else None
        resp = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}", params=params)
        data = resp.json()
        if isinstance(data, list):
            raise GitHubAPIError(400, f"{path} is a directory")
        if data.get("type") != "file":
            raise GitHubAPIError(400, f"{path} is not a file")
        return ContentFile(
            path=data.get("path", path),
            sha=data["sha"],
            content=decode_content(data.get("content", "")),
        )

    async def list_directory(
        self, owner: str, repo: str, path: str = "", ref: Optional[str] = None
    ) -> List[ContentEntry]:
        params = {"ref": ref} if ref else None
        resp = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}", params=params)
        data = resp.json()
        if not isinstance(data, list):
            data = [data]
        return [ContentEntry.from_api(item) for item in data]

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> str:
        """
        Create or update a file.

        Args:
            sha: Blob sha of the version being replaced. Required by GitHub
                when the file exists; a stale value fails with a conflict.

        Returns:
            The sha of the newly written blob.
        """
        body: Dict[str, Any] = {"message": message, "content": encode_content(content)}
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch
        resp = await self._request(
            "PUT", f"/repos/{owner}/{repo}/contents/{path}", expected=(200, 201), json=body
        )
        return resp.json().get("content", {}).get("sha", "")

