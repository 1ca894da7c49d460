from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.social_data import SocialDataService
from app.social_service import SocialService
from app.text_utils import validate_github_username
from auth.dependencies import (
    CurrentSession,
    get_current_session,
    get_social_data_service,
    get_social_service,
)
from schemas.social import CreatePostRequest, FeedResponse, MessageResponse, PostResponse

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.post("", response_model=PostResponse)
async def create_post(
    body: CreatePostRequest,
    session: CurrentSession = Depends(get_current_session),
    data: SocialDataService = Depends(get_social_data_service),
):
    """Commit a new post to the caller's social-data repository."""
    content = (body.content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Content is required")

    result = await data.create_post(
        session.username,
        content,
        media=body.media or body.images,
        mentions=body.mentions,
        hashtags=body.hashtags,
        reply_to=body.reply_to,
    )
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)

    return PostResponse(post=result.data["post"], filename=result.data["filename"])


@router.get("", response_model=FeedResponse)
async def get_feed(
    limit: Optional[int] = Query(None, ge=1, le=200),
    session: CurrentSession = Depends(get_current_session),
    social: SocialService = Depends(get_social_service),
):
    """Posts from followed users and the caller, newest first."""
    result = await social.get_feed_data(session.username, limit=limit)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return FeedResponse(posts=result.data)


@router.get("/{username}", response_model=FeedResponse)
async def get_user_posts(
    username: str,
    limit: Optional[int] = Query(None, ge=1, le=200),
    data: SocialDataService = Depends(get_social_data_service),
):
    if not validate_github_username(username):
        raise HTTPException(status_code=400, detail="Invalid username")

    result = await data.get_user_posts(username, limit=limit)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return FeedResponse(posts=result.data)


@router.post("/{post_id}/like", response_model=MessageResponse)
async def like_post(
    post_id: str,
    session: CurrentSession = Depends(get_current_session),
    data: SocialDataService = Depends(get_social_data_service),
):
    result = await data.like_post(session.username, post_id)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return MessageResponse(message=f"Liked {post_id}")


@router.delete("/{post_id}/like", response_model=MessageResponse)
async def unlike_post(
    post_id: str,
    session: CurrentSession = Depends(get_current_session),
    data: SocialDataService = Depends(get_social_data_service),
):
    result = await data.unlike_post(session.username, post_id)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return MessageResponse(message=f"Unliked {post_id}")
