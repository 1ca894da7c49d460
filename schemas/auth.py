from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Token(ApiModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    handle: str
    repository: str
    repository_created: bool = False


class TokenLogin(ApiModel):
    token: str


class DeviceCodeResponse(ApiModel):
    device_code: str
    user_code: str
    verification_uri: str
    expires_in: int
    interval: int


class DeviceTokenRequest(ApiModel):
    device_code: str
    interval: int = 5


class DevicePending(ApiModel):
    status: str
    error: str
    interval: int


class SessionUser(ApiModel):
    username: str
    github_id: str
    handle: str
    repository: str
    scopes: List[str] = []
    name: Optional[str] = None
    avatar: Optional[str] = None
