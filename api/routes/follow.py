from fastapi import APIRouter, Depends, HTTPException

from app.social_service import SocialService
from auth.dependencies import CurrentSession, get_current_session, get_social_service
from schemas.social import FollowRequest, MessageResponse

router = APIRouter(prefix="/api/follow", tags=["Follow"])

NOT_FOUND_ERRORS = {"Target user not found", "Current user not found"}


@router.post("", response_model=MessageResponse)
async def follow_action(
    body: FollowRequest,
    session: CurrentSession = Depends(get_current_session),
    social: SocialService = Depends(get_social_service),
):
    """Follow or unfollow another registered user."""
    target = (body.target_username or "").strip()
    if not target:
        raise HTTPException(status_code=400, detail="Target username is required")
    if target == session.username:
        raise HTTPException(status_code=400, detail="Cannot follow yourself")

    if body.action == "follow":
        result = await social.follow_user(session.username, target)
    elif body.action == "unfollow":
        result = await social.unfollow_user(session.username, target)
    else:
        raise HTTPException(
            status_code=400, detail='Invalid action. Must be "follow" or "unfollow"'
        )

    if not result.success:
        status = 404 if result.error in NOT_FOUND_ERRORS else 500
        raise HTTPException(status_code=status, detail=result.error)

    return MessageResponse(message=f"Successfully {body.action}ed {target}")
