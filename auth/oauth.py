"""
GitHub OAuth: authorization-code flow, device flow and personal access
tokens. Every path ends with a GitHub access token that the rest of the
application uses on the user's behalf.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from app.config import Settings, settings as default_settings
from app.github_client import GitHubAPIError, GitHubClient
from app.logger import get_logger

logger = get_logger(__name__)

DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
# GitHub asks clients that hit slow_down to add this many seconds
SLOW_DOWN_INCREMENT = 5


class OAuthError(Exception):
    """GitHub refused or failed an OAuth exchange."""

    def __init__(self, error: str, description: str = ""):
        super().__init__(description or error)
        self.error = error
        self.description = description


@dataclass
class DeviceCode:
    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int


@dataclass
class DeviceTokenResult:
    """
    One poll of the device flow. Either ``access_token`` is set, or ``error``
    is one of authorization_pending, slow_down, expired_token, access_denied
    and ``interval`` says how long to wait before polling again.
    """
    access_token: Optional[str] = None
    scope: str = ""
    error: Optional[str] = None
    interval: int = 0

    @property
    def pending(self) -> bool:
        return self.error in ("authorization_pending", "slow_down")


def _settings(settings: Optional[Settings]) -> Settings:
    return settings or default_settings


def build_authorization_url(state: str, settings: Optional[Settings] = None) -> str:
    s = _settings(settings)
    query = urlencode({
        "client_id": s.github_client_id,
        "redirect_uri": s.oauth_redirect_uri,
        "scope": " ".join(s.oauth_scope_list),
        "state": state,
        "allow_signup": "true",
    })
    return f"{s.github_web_base.rstrip('/')}/login/oauth/authorize?{query}"


async def _post_form(path: str, data: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    url = f"{settings.github_web_base.rstrip('/')}{path}"
    async with httpx.AsyncClient(timeout=settings.github_timeout_seconds) as client:
        resp = await client.post(url, data=data, headers={"Accept": "application/json"})
    if resp.status_code >= 400:
        raise OAuthError("http_error", f"{path} returned {resp.status_code}")
    return resp.json()


async def exchange_code_for_token(code: str, settings: Optional[Settings] = None) -> str:
    """
    Trade an authorization code for an access token.

    Raises:
        OAuthError: GitHub rejected the code (expired, reused, wrong redirect).
    """
    s = _settings(settings)
    body = await _post_form(
        "/login/oauth/access_token",
        {
            "client_id": s.github_client_id,
            "client_secret": s.github_client_secret,
            "code": code,
            "redirect_uri": s.oauth_redirect_uri,
        },
        s,
    )
    if "error" in body or not body.get("access_token"):
        raise OAuthError(body.get("error", "no_token"), body.get("error_description", ""))
    return body["access_token"]


async def request_device_code(settings: Optional[Settings] = None) -> DeviceCode:
    s = _settings(settings)
    body = await _post_form(
        "/login/device/code",
        {"client_id": s.github_client_id, "scope": " ".join(s.oauth_scope_list)},
        s,
    )
    if "error" in body:
        raise OAuthError(body["error"], body.get("error_description", ""))
    return DeviceCode(
        device_code=body["device_code"],
        user_code=body["user_code"],
        verification_uri=body["verification_uri"],
        expires_in=int(body.get("expires_in", 900)),
        interval=int(body.get("interval", 5)),
    )


async def poll_device_token(
    device_code: str, interval: int = 5, settings: Optional[Settings] = None
) -> DeviceTokenResult:
    """Poll once for the token of a pending device authorization."""
    s = _settings(settings)
    body = await _post_form(
        "/login/oauth/access_token",
        {
            "client_id": s.github_client_id,
            "device_code": device_code,
            "grant_type": DEVICE_GRANT_TYPE,
        },
        s,
    )
    if body.get("access_token"):
        return DeviceTokenResult(access_token=body["access_token"], scope=body.get("scope", ""))

    error = body.get("error", "unknown_error")
    if error == "slow_down":
        interval = int(body.get("interval", interval + SLOW_DOWN_INCREMENT))
    elif error != "authorization_pending":
        logger.warning(f"Device authorization ended: {error}")
    return DeviceTokenResult(error=error, interval=interval)


async def validate_personal_access_token(
    token: str, settings: Optional[Settings] = None
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Check a manually supplied token against ``/user``.

    Returns:
        Tuple of (GitHub user payload, granted scopes).

    Raises:
        OAuthError: the token is empty or GitHub does not accept it.
    """
    if not token or not token.strip():
        raise OAuthError("invalid_token", "Token is required")
    async with GitHubClient(token.strip(), settings=_settings(settings)) as client:
        try:
            return await client.get_authenticated_user()
        except GitHubAPIError as e:
            raise OAuthError("invalid_token", e.message) from e
