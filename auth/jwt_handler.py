from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.config import Settings, settings as default_settings

STATE_TOKEN_EXPIRE_MINUTES = 10
SESSION_TOKEN_TYPE = "session"
STATE_TOKEN_TYPE = "oauth_state"


def _encode(payload: Dict[str, Any], minutes: int, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {**payload, "exp": expire}
    return jwt.encode(payload, settings.session_secret_key, algorithm=settings.session_algorithm)


def _decode(token: str, expected_type: str, settings: Settings) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, settings.session_secret_key, algorithms=[settings.session_algorithm])
    except JWTError:
        return None
    if payload.get("typ") != expected_type:
        return None
    return payload


def create_access_token(
    login: str,
    github_id: str,
    github_token: str,
    settings: Optional[Settings] = None,
) -> str:
    """Session token carrying the GitHub login, id and access token."""
    settings = settings or default_settings
    return _encode(
        {"sub": login, "gid": github_id, "gh": github_token, "typ": SESSION_TOKEN_TYPE},
        settings.session_expire_minutes,
        settings,
    )


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Optional[Dict[str, Any]]:
    """Payload of a valid session token, or None if forged, expired or malformed."""
    return _decode(token, SESSION_TOKEN_TYPE, settings or default_settings)


def create_state_token(nonce: str, settings: Optional[Settings] = None) -> str:
    return _encode(
        {"nonce": nonce, "typ": STATE_TOKEN_TYPE},
        STATE_TOKEN_EXPIRE_MINUTES,
        settings or default_settings,
    )


def verify_state_token(token: str, nonce: str, settings: Optional[Settings] = None) -> bool:
    payload = _decode(token, STATE_TOKEN_TYPE, settings or default_settings)
    return payload is not None and payload.get("nonce") == nonce
