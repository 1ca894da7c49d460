"""
Shared user registry: one JSON file listing every registered user, kept in
a central repository so users can discover each other.
"""
from typing import Any, Dict, List, Optional

from app.config import Settings, settings as default_settings
from app.documents import DocumentStore
from app.github_client import GitHubAPIError, GitHubClient
from app.logger import get_logger, logged_operation
from app.models import OperationResult, Registry, UserRegistration, parse_timestamp

logger = get_logger(__name__)


class UserRegistryService:
    """Reads and upserts entries of the registry file."""

    def __init__(self, client: GitHubClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or default_settings
        self.store = DocumentStore(client, self.settings)

    @property
    def _location(self):
        s = self.settings
        return s.registry_owner, s.registry_repo, s.registry_path

    @property
    def _branch(self) -> Optional[str]:
        return self.settings.registry_branch or None

    @logged_operation("register_user")
    async def register_user(self, registration: UserRegistration) -> OperationResult:
        """
        Insert or update a user, keyed by GitHub id.

        An existing entry keeps its original ``joinedAt``; every other field
        is overwritten. Users are kept sorted by ``joinedAt``, newest first.
        """
        incoming = registration.to_json_dict()
        outcome: Dict[str, Any] = {}

        def mutate(data: Dict[str, Any]) -> bool:
            users: List[Dict[str, Any]] = data.setdefault("users", [])
            existing = next(
                (u for u in users if str(u.get("githubId")) == registration.github_id), None
            )
            if existing is None:
                users.append(dict(incoming))
                outcome["created"] = True
            else:
                merged = {**existing, **incoming, "joinedAt": existing.get("joinedAt", incoming["joinedAt"])}
                outcome["created"] = False
                if merged == existing:
                    return False
                existing.clear()
                existing.update(merged)
            users.sort(key=lambda u: parse_timestamp(u.get("joinedAt")), reverse=True)
            return True

        def message() -> str:
            if outcome.get("created"):
                return f"Add new user: {registration.username}"
            return f"Update user registration: {registration.username}"

        owner, repo, path = self._location
        try:
            await self.store.update_json(
                owner, repo, path, mutate, message,
                default=lambda: {"users": []},
                branch=self._branch,
            )
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error registering user {registration.username}: {e}")
            return OperationResult.fail("Failed to register user")
        return OperationResult.ok({"created": outcome.get("created", False)})

    async def get_all_users(self) -> OperationResult:
        """
        Returns:
            OperationResult with a list of UserRegistration. A registry that
            does not exist yet is empty.
        """
        owner, repo, path = self._location
        try:
            doc = await self.store.read_json_or_default(
                owner, repo, path, default=lambda: {"users": []}, ref=self._branch
            )
            registry = Registry.model_validate(doc.data)
        except (GitHubAPIError, ValueError) as e:
            logger.error(f"Error getting all users: {e}")
            return OperationResult.fail("Failed to get users")
        return OperationResult.ok(registry.users)

    async def _find(self, predicate) -> OperationResult:
        result = await self.get_all_users()
        if not result.success:
            return result
        user = next((u for u in result.data if predicate(u)), None)
        if user is None:
            return OperationResult.fail("User not found")
        return OperationResult.ok(user)

    async def find_user_by_handle(self, handle: str) -> OperationResult:
        return await self._find(lambda u: u.handle == handle)

    async def find_user_by_username(self, username: str) -> OperationResult:
        return await self._find(lambda u: u.username == username)
