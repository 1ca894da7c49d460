from fastapi import APIRouter, Depends, HTTPException

from app.registry import UserRegistryService
from app.social_data import SocialDataService
from app.text_utils import validate_github_username
from auth.dependencies import (
    CurrentSession,
    get_current_session,
    get_registry_service,
    get_social_data_service,
)
from schemas.social import FollowListResponse, ProfileResponse, ProfileUpdate, UsersResponse

router = APIRouter(prefix="/api/users", tags=["Users"])


def _check_username(username: str) -> None:
    if not validate_github_username(username):
        raise HTTPException(status_code=400, detail="Invalid username")


@router.get("", response_model=UsersResponse)
async def list_users(
    session: CurrentSession = Depends(get_current_session),
    registry: UserRegistryService = Depends(get_registry_service),
):
    """Every registered user except the caller."""
    result = await registry.get_all_users()
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return UsersResponse(users=[u for u in result.data if u.username != session.username])


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdate,
    session: CurrentSession = Depends(get_current_session),
    data: SocialDataService = Depends(get_social_data_service),
):
    result = await data.update_user_profile(session.username, body.model_dump(exclude_none=True))
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return ProfileResponse(profile=result.data)


@router.get("/{username}", response_model=ProfileResponse)
async def get_profile(
    username: str,
    data: SocialDataService = Depends(get_social_data_service),
):
    _check_username(username)
    result = await data.get_user_profile(username)
    if not result.success:
        status = 404 if result.error == "File not found" else 500
        raise HTTPException(status_code=status, detail=result.error)
    return ProfileResponse(profile=result.data)


@router.get("/{username}/following", response_model=FollowListResponse)
async def get_following(
    username: str,
    data: SocialDataService = Depends(get_social_data_service),
):
    _check_username(username)
    result = await data.get_following(username)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return FollowListResponse(users=result.data.following)


@router.get("/{username}/followers", response_model=FollowListResponse)
async def get_followers(
    username: str,
    data: SocialDataService = Depends(get_social_data_service),
):
    _check_username(username)
    result = await data.get_followers(username)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)
    return FollowListResponse(users=result.data.followers)
