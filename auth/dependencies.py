"""
FastAPI dependencies: the signed-in session and per-request GitHub services.
"""
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings
from app.github_client import GitHubClient
from app.registry import UserRegistryService
from app.security import GitHubSecurity
from app.social_data import SocialDataService
from app.social_service import SocialService
from auth.jwt_handler import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentSession:
    username: str
    github_id: str
    github_token: str


def get_app_settings() -> Settings:
    return get_settings()


def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> CurrentSession:
    """Session from ``Authorization: Bearer`` or the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload = decode_access_token(token, settings)
    if not payload or not payload.get("sub") or not payload.get("gh"):
        raise HTTPException(status_code=401, detail="Invalid token")

    return CurrentSession(
        username=payload["sub"],
        github_id=str(payload.get("gid", "")),
        github_token=payload["gh"],
    )


ClientFactory = Callable[[str], GitHubClient]


def get_client_factory(settings: Settings = Depends(get_app_settings)) -> ClientFactory:
    """Builds GitHub clients for a given access token."""
    return lambda token: GitHubClient(token, settings)


async def get_github_client(
    session: CurrentSession = Depends(get_current_session),
    make_client: ClientFactory = Depends(get_client_factory),
) -> AsyncIterator[GitHubClient]:
    client = make_client(session.github_token)
    try:
        yield client
    finally:
        await client.close()


def get_social_data_service(
    client: GitHubClient = Depends(get_github_client),
    settings: Settings = Depends(get_app_settings),
) -> SocialDataService:
    return SocialDataService(client, settings)


def get_social_service(
    client: GitHubClient = Depends(get_github_client),
    settings: Settings = Depends(get_app_settings),
) -> SocialService:
    return SocialService(client, settings)


def get_registry_service(
    client: GitHubClient = Depends(get_github_client),
    settings: Settings = Depends(get_app_settings),
) -> UserRegistryService:
    return UserRegistryService(client, settings)


def get_github_security(
    client: GitHubClient = Depends(get_github_client),
    settings: Settings = Depends(get_app_settings),
) -> GitHubSecurity:
    return GitHubSecurity(client, settings)
