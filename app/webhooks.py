"""
Handlers for GitHub webhook deliveries. Signatures are checked by the route
before anything here runs.
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config import Settings, settings as default_settings
from app.logger import get_logger

logger = get_logger(__name__)

Handler = Callable[[Dict[str, Any], Settings], Awaitable[Dict[str, Any]]]


def _repository(payload: Dict[str, Any]) -> Dict[str, Any]:
    return payload.get("repository") or {}


async def handle_push_event(payload: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    repository = _repository(payload)
    # push payloads carry owner.name, other events owner.login
    owner_info = repository.get("owner") or {}
    owner = owner_info.get("login") or owner_info.get("name")
    if repository.get("name") != settings.social_repo_name:
        return {"handled": False}

    logger.info(f"Social data updated for user: {owner}")
    return {"handled": True, "user": owner, "ref": payload.get("ref")}


async def handle_repository_event(payload: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    action = payload.get("action")
    repository = _repository(payload)
    if repository.get("name") != settings.social_repo_name:
        return {"handled": False}

    full_name = repository.get("full_name")
    if action == "created":
        logger.info(f"New social-data repository created: {full_name}")
    elif action == "deleted":
        # follows pointing here are skipped at read time; the registry entry stays
        logger.warning(f"Social-data repository deleted: {full_name}")
    return {"handled": action in ("created", "deleted"), "action": action, "repository": full_name}


async def handle_member_event(payload: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    action = payload.get("action")
    member = (payload.get("member") or {}).get("login")
    repository = _repository(payload)
    full_name = repository.get("full_name")

    logger.info(f"Member {action}: {member} on {full_name}")
    if repository.get("name") == settings.main_repo_name and action == "added":
        logger.warning(f"New collaborator added to main repo: {member}")
    return {"handled": True, "action": action, "member": member, "repository": full_name}


HANDLERS: Dict[str, Handler] = {
    "push": handle_push_event,
    "repository": handle_repository_event,
    "member": handle_member_event,
}


async def dispatch_event(
    event: Optional[str],
    payload: Dict[str, Any],
    settings: Optional[Settings] = None,
) -> Optional[Dict[str, Any]]:
    """
    Run the handler registered for ``event``.

    Returns:
        The handler's summary, or None for events without a handler.
    """
    handler = HANDLERS.get(event or "")
    if handler is None:
        logger.info(f"Received unhandled webhook event: {event}")
        return None
    return await handler(payload, settings or default_settings)
