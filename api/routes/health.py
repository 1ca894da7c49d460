from fastapi import APIRouter, Depends

from app.config import Settings
from auth.dependencies import get_app_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health(settings: Settings = Depends(get_app_settings)):
    return {
        "status": "ok",
        "environment": settings.app_env,
        "oauth_configured": bool(settings.github_client_id and settings.github_client_secret),
        "webhook_configured": bool(settings.github_webhook_secret),
    }
