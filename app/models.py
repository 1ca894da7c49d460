"""
Pydantic models for the JSON documents stored in GitHub repositories.
Attributes are snake_case in Python and camelCase in the committed files.
"""
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    Parse an ISO-8601 timestamp from a stored document.
    Unparseable or missing values sort as the oldest possible time.
    """
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Document(BaseModel):
    """Base for committed JSON documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RepoConfig(Document):
    version: str = "1.0.0"
    schema_version: str = "1.0"
    app_url: str = ""
    created_at: str = Field(default_factory=utc_now_iso)


class Profile(Document):
    version: str = "1.0"
    handle: str
    display_name: str = ""
    bio: str = ""
    avatar: str = ""
    website: str = ""
    location: str = ""
    joined_at: str = Field(default_factory=utc_now_iso)
    github_id: str = ""
    verified: bool = True


class Post(Document):
    id: str
    type: Literal["post", "reply", "repost"] = "post"
    content: str
    created_at: str = Field(default_factory=utc_now_iso)
    author: str
    media: List[str] = Field(default_factory=list)
    reply_to: Optional[str] = None
    mentions: List[str] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)
    signature: str = ""


class FollowEntry(Document):
    handle: str
    repository: str
    followed_at: str = Field(default_factory=utc_now_iso)


class FollowingList(Document):
    following: List[FollowEntry] = Field(default_factory=list)


class FollowersList(Document):
    followers: List[FollowEntry] = Field(default_factory=list)


class LikeEntry(Document):
    post_id: str
    liked_at: str = Field(default_factory=utc_now_iso)


class LikesList(Document):
    likes: List[LikeEntry] = Field(default_factory=list)


class UserRegistration(Document):
    github_id: str
    username: str
    name: str = ""
    email: str = ""
    avatar: str = ""
    handle: str
    repository: str
    joined_at: str = Field(default_factory=utc_now_iso)


class Registry(Document):
    users: List[UserRegistration] = Field(default_factory=list)


class OperationResult(BaseModel):
    """
    Outcome of a service operation.
    Failures carry a human readable error instead of raising.
    """
    success: bool
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)
