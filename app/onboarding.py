"""
Sign-in flow shared by every authentication method.

After GitHub hands us a token the account is checked, given a social-data
repository on first sign-in, and recorded in the user registry.
"""
from typing import Any, Dict, Optional

from app.config import Settings, settings as default_settings
from app.github_client import GitHubAPIError, GitHubClient
from app.logger import get_logger, logged_operation
from app.models import OperationResult, Profile, UserRegistration
from app.registry import UserRegistryService
from app.security import GitHubSecurity
from app.social_data import SocialDataService

logger = get_logger(__name__)


async def _provision_repository(
    data: SocialDataService,
    security: GitHubSecurity,
    user: Dict[str, Any],
    settings: Settings,
) -> OperationResult:
    login = user["login"]
    created = await data.create_social_data_repository(login)
    if not created.success:
        return created

    profile = Profile(
        handle=settings.handle_for(login),
        display_name=user.get("name") or login,
        avatar=user.get("avatar_url") or "",
        github_id=str(user["id"]),
    )
    initialized = await data.initialize_social_data_repository(login, profile)
    if not initialized.success:
        return initialized

    secured = await security.secure_user_repository(login, settings.social_repo_name)
    if not secured.success:
        logger.warning(f"Could not secure repository for {login}: {secured.error}")
    return OperationResult.ok()


@logged_operation("sign_in")
async def sign_in(
    client: GitHubClient,
    user: Dict[str, Any],
    settings: Optional[Settings] = None,
) -> OperationResult:
    """
    Complete a sign-in for the GitHub account ``user`` (the ``/user`` payload)
    whose token backs ``client``.

    Returns:
        OperationResult with ``data={"registration": UserRegistration,
        "repository_created": bool}``. Fails when the token lacks a required
        scope or the repository could not be provisioned.
    """
    settings = settings or default_settings
    login = user["login"]
    security = GitHubSecurity(client, settings)
    data = SocialDataService(client, settings)

    scopes = await security.verify_token_scopes()
    if not scopes.success:
        logger.warning(f"Rejected sign-in for {login}: {scopes.error}")
        return OperationResult(success=False, error=scopes.error, data=scopes.data)

    try:
        exists = await client.repository_exists(login, settings.social_repo_name)
    except GitHubAPIError as e:
        logger.error(f"Error checking repository for {login}: {e}")
        return OperationResult.fail("Failed to check repository")

    if not exists:
        logger.info(f"First sign-in for {login}, provisioning {settings.social_repository_for(login)}")
        provisioned = await _provision_repository(data, security, user, settings)
        if not provisioned.success:
            return provisioned

    registration = UserRegistration(
        github_id=str(user["id"]),
        username=login,
        name=user.get("name") or "",
        email=user.get("email") or "",
        avatar=user.get("avatar_url") or "",
        handle=settings.handle_for(login),
        repository=settings.social_repository_for(login),
    )
    registered = await UserRegistryService(client, settings).register_user(registration)
    if not registered.success:
        return registered

    return OperationResult.ok({"registration": registration, "repository_created": not exists})
