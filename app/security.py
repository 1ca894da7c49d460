"""
Security helpers: webhook signatures, input sanitisation, token scope checks
and repository hardening.
"""
import hashlib
import hmac
import re
import secrets
from typing import List, Optional, Union

from app.config import Settings, settings as default_settings
from app.github_client import GitHubAPIError, GitHubClient
from app.logger import get_logger
from app.models import OperationResult

logger = get_logger(__name__)

MAX_REPOSITORY_NAME_LENGTH = 100
SOCIAL_REPO_TOPICS = ["social-data", "distributed-social", "gitsocial", "open-social"]

_DISALLOWED_CHARS_RE = re.compile(r"[^a-zA-Z0-9\-_.]")
_REPOSITORY_NAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")


def verify_webhook_signature(
    payload: Union[bytes, str], signature: Optional[str], secret: str
) -> bool:
    """
    Verify a GitHub webhook ``X-Hub-Signature-256`` header.

    Args:
        payload: Raw request body exactly as received.
        signature: Header value, ``sha256=<hex digest>``.
        secret: Shared webhook secret.

    Returns:
        True only when the HMAC-SHA256 of the body matches.
    """
    if not secret:
        logger.warning("Webhook secret not configured")
        return False
    if not signature or not signature.startswith("sha256="):
        return False

    body = payload.encode("utf-8") if isinstance(payload, str) else payload
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def sign_webhook_payload(payload: bytes, secret: str) -> str:
    """Signature header value GitHub would send for ``payload``."""
    return "sha256=" + hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def generate_webhook_secret() -> str:
    return secrets.token_hex(32)


def sanitize_input(value: str) -> str:
    """Keep only characters valid in repository and user names, max 100."""
    return _DISALLOWED_CHARS_RE.sub("", value or "")[:MAX_REPOSITORY_NAME_LENGTH]


def is_valid_repository_name(name: str) -> bool:
    """GitHub repository naming rules."""
    if not name or len(name) > MAX_REPOSITORY_NAME_LENGTH:
        return False
    if not _REPOSITORY_NAME_RE.match(name):
        return False
    return name[0] not in "._-" and name[-1] not in "._-"


class GitHubSecurity:
    """
    Token and repository checks performed with the caller's GitHub token.
    """

    def __init__(self, client: GitHubClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or default_settings

    async def verify_token_scopes(self, required: Optional[List[str]] = None) -> OperationResult:
        """
        Check the token carries every required OAuth scope.

        Returns:
            OperationResult with ``data={"scopes": [...], "missing": [...]}``.
        """
        required = required if required is not None else self.settings.required_scope_list
        try:
            _, scopes = await self.client.get_authenticated_user()
        except GitHubAPIError as e:
            logger.error(f"Error verifying token scopes: {e}")
            return OperationResult(success=False, error="Failed to verify token", data={"scopes": [], "missing": required})

        # repo implies public_repo and repo:status
        effective = set(scopes)
        if "repo" in effective:
            effective.update({"public_repo", "repo:status"})
        if "user" in effective:
            effective.update({"read:user", "user:email"})

        missing = [scope for scope in required if scope not in effective]
        data = {"scopes": scopes, "missing": missing}
        if missing:
            return OperationResult(success=False, error=f"Missing scopes: {', '.join(missing)}", data=data)
        return OperationResult(success=True, data=data)

    async def secure_user_repository(self, owner: str, repo: str) -> OperationResult:
        """
        Harden a social-data repository: public, merge commits only, owner-only
        pushes to the default branch, discoverable topics.
        """
        branch = self.settings.social_default_branch
        try:
            await self.client.update_repository(
                owner,
                repo,
                private=False,
                has_issues=False,
                has_projects=False,
                has_wiki=False,
                allow_squash_merge=False,
                allow_merge_commit=True,
                allow_rebase_merge=False,
                delete_branch_on_merge=True,
            )
            await self.client.update_branch_protection(
                owner,
                repo,
                branch,
                {
                    "required_status_checks": {"strict": True, "contexts": []},
                    "enforce_admins": False,
                    "required_pull_request_reviews": {
                        "required_approving_review_count": 0,
                        "dismiss_stale_reviews": False,
                        "require_code_owner_reviews": False,
                        "bypass_pull_request_allowances": {
                            "users": [owner],
                            "teams": [],
                            "apps": [],
                        },
                    },
                    "restrictions": {"users": [owner], "teams": [], "apps": []},
                },
            )
            await self.client.replace_topics(owner, repo, SOCIAL_REPO_TOPICS)
        except GitHubAPIError as e:
            logger.error(f"Error securing repository {owner}/{repo}: {e}")
            return OperationResult.fail(e.message or str(e))

        logger.info(f"Secured repository {owner}/{repo}")
        return OperationResult.ok()

    async def verify_user_repository_access(self, username: str, repo: str) -> bool:
        """True when ``username/repo`` exists and is owned by ``username``."""
        try:
            repo_data = await self.client.get_repository(username, repo)
        except GitHubAPIError:
            return False
        return (repo_data.get("owner") or {}).get("login") == username

    async def verify_main_repo_collaborator_access(self, username: str) -> bool:
        """Admin gate: allow-listed and a collaborator on the main repository."""
        if username not in self.settings.admin_owner_list:
            return False
        try:
            return await self.client.check_collaborator(
                self.settings.main_repo_owner, self.settings.main_repo_name, username
            )
        except GitHubAPIError as e:
            logger.warning(f"Collaborator check failed for {username}: {e}")
            return False
