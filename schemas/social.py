from typing import Any, Dict, List, Optional

from pydantic import Field

from app.models import FollowEntry, Post, Profile, UserRegistration
from schemas.auth import ApiModel


class CreatePostRequest(ApiModel):
    content: Optional[str] = None
    media: List[str] = Field(default_factory=list)
    # older clients send images instead of media
    images: List[str] = Field(default_factory=list)
    mentions: Optional[List[str]] = None
    hashtags: Optional[List[str]] = None
    reply_to: Optional[str] = None


class PostResponse(ApiModel):
    success: bool = True
    post: Post
    filename: str
    message: str = "Post created successfully"


class FeedResponse(ApiModel):
    success: bool = True
    posts: List[Post]


class FollowRequest(ApiModel):
    target_username: Optional[str] = None
    action: Optional[str] = None


class MessageResponse(ApiModel):
    success: bool = True
    message: str


class UsersResponse(ApiModel):
    success: bool = True
    users: List[UserRegistration]


class ProfileResponse(ApiModel):
    success: bool = True
    profile: Profile


class FollowListResponse(ApiModel):
    success: bool = True
    users: List[FollowEntry]


class ProfileUpdate(ApiModel):
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=100)


class AdminTarget(ApiModel):
    username: Optional[str] = None
    repository: Optional[str] = None


class AdminRequest(ApiModel):
    action: Optional[str] = None
    data: AdminTarget = Field(default_factory=AdminTarget)


class WebhookResponse(ApiModel):
    success: bool = True
    event: Optional[str] = None
    delivery: Optional[str] = None
    message: str = "Webhook processed successfully"
    result: Optional[Dict[str, Any]] = None
