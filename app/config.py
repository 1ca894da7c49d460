"""
Configuration module for environment variables.
"""
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env", override=False)


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub API
    github_api_base: str = Field(default="https://api.github.com")
    github_web_base: str = Field(default="https://github.com")
    github_api_version: str = Field(default="2022-11-28")
    github_timeout_seconds: float = Field(default=30.0)

    # OAuth application
    github_client_id: str = Field(default="")
    github_client_secret: str = Field(default="")
    oauth_redirect_uri: str = Field(
        default="http://localhost:8000/api/auth/callback",
        description="Callback URL registered on the GitHub OAuth app"
    )
    oauth_scopes: str = Field(
        default="read:user,user:email,public_repo,repo:status,read:org",
        description="Comma separated scopes requested at authorization"
    )
    required_scopes: str = Field(
        default="read:user,user:email,public_repo",
        description="Comma separated scopes a token must carry to sign in"
    )

    # Webhooks
    github_webhook_secret: str = Field(default="")

    # User registry
    registry_owner: str = Field(default="open-social-app")
    registry_repo: str = Field(default="registry")
    registry_path: str = Field(default="users/registry.json")
    registry_branch: str = Field(
        default="",
        description="Branch holding the registry; empty means the default branch"
    )

    # Per-user social-data repository
    social_repo_name: str = Field(default="open-social-data")
    social_default_branch: str = Field(default="main")
    app_url: str = Field(default="https://gitsocial.io")
    handle_suffix: str = Field(default="github.io")

    # Admin access
    admin_allowed_owners: str = Field(default="")
    main_repo_owner: str = Field(default="open-social-app")
    main_repo_name: str = Field(default="open-social")

    # Sessions
    session_secret_key: str = Field(default="CHANGE_THIS_SECRET")
    session_algorithm: str = Field(default="HS256")
    session_expire_minutes: int = Field(default=60 * 24 * 7)
    session_cookie_name: str = Field(default="gitsocial_session")
    oauth_state_cookie_name: str = Field(default="gitsocial_oauth_state")

    # Feed limits
    posts_per_user_limit: int = Field(default=20)
    feed_max_years: int = Field(default=2)
    feed_max_months: int = Field(default=6)

    # Read-modify-write contention on the same file
    write_retry_attempts: int = Field(
        default=3,
        description="Attempts for a JSON update whose sha precondition fails; 1 disables retries"
    )
    write_retry_wait_seconds: float = Field(default=1.0)

    # Application Settings
    app_env: str = Field(default="development")
    debug: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    log_file: str = Field(default="")
    cors_origins: str = Field(default="*")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def oauth_scope_list(self) -> List[str]:
        return _split_csv(self.oauth_scopes)

    @property
    def required_scope_list(self) -> List[str]:
        return _split_csv(self.required_scopes)

    @property
    def admin_owner_list(self) -> List[str]:
        return _split_csv(self.admin_allowed_owners)

    @property
    def cors_origin_list(self) -> List[str]:
        return _split_csv(self.cors_origins) or ["*"]

    def handle_for(self, login: str) -> str:
        """Display handle for a GitHub login, e.g. ``@octocat.github.io``."""
        return f"@{login}.{self.handle_suffix}"

    def social_repository_for(self, login: str) -> str:
        return f"{login}/{self.social_repo_name}"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Convenience function for direct access
settings = get_settings()
