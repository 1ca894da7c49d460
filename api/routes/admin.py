"""
Maintenance endpoints, restricted to allow-listed collaborators of the main
repository.
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from app.logger import get_logger
from app.models import utc_now_iso
from app.security import GitHubSecurity, is_valid_repository_name, sanitize_input
from app.text_utils import validate_github_username
from auth.dependencies import CurrentSession, get_current_session, get_github_security
from schemas.social import AdminRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


async def require_admin(
    session: CurrentSession = Depends(get_current_session),
    security: GitHubSecurity = Depends(get_github_security),
) -> CurrentSession:
    if not await security.verify_main_repo_collaborator_access(session.username):
        logger.warning(f"Admin access denied for {session.username}")
        raise HTTPException(status_code=403, detail="Forbidden - Insufficient permissions")
    return session


@router.get("")
async def admin_info(
    action: str = Query(""),
    session: CurrentSession = Depends(require_admin),
):
    if action == "stats":
        return {
            "message": "GitSocial Admin Dashboard",
            "permissions": "Full access granted",
            "user": session.username,
            "timestamp": utc_now_iso(),
        }
    if action == "users":
        return {"message": "User management access granted", "user": session.username}
    raise HTTPException(status_code=400, detail="Invalid action. Available actions: stats, users")


@router.post("")
async def admin_action(
    body: AdminRequest,
    session: CurrentSession = Depends(require_admin),
    security: GitHubSecurity = Depends(get_github_security),
):
    if body.action not in ("secure_repository", "verify_permissions"):
        raise HTTPException(
            status_code=400,
            detail="Invalid action. Available actions: secure_repository, verify_permissions",
        )

    username = sanitize_input(body.data.username or "")
    repository = sanitize_input(body.data.repository or "")
    if not username or not repository:
        raise HTTPException(status_code=400, detail="Missing username or repository")
    if not validate_github_username(username) or not is_valid_repository_name(repository):
        raise HTTPException(status_code=400, detail="Invalid username or repository")

    logger.info(f"{session.username} requested {body.action} on {username}/{repository}")
    if body.action == "secure_repository":
        result = await security.secure_user_repository(username, repository)
        return result.model_dump(exclude_none=True)

    has_access = await security.verify_user_repository_access(username, repository)
    return {"hasAccess": has_access, "username": username, "repository": repository}
