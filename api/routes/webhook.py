import json

from fastapi import APIRouter, Depends, HTTPException, Request

from app.config import Settings
from app.logger import get_logger
from app.security import verify_webhook_signature
from app.webhooks import dispatch_event
from auth.dependencies import get_app_settings
from schemas.social import WebhookResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhook", tags=["Webhooks"])


@router.post("/github", response_model=WebhookResponse, response_model_exclude_none=True)
async def github_webhook(request: Request, settings: Settings = Depends(get_app_settings)):
    """
    Receive a GitHub webhook delivery. The raw body must match the
    ``X-Hub-Signature-256`` HMAC computed with the shared secret.
    """
    body = await request.body()
    signature = request.headers.get("x-hub-signature-256")
    event = request.headers.get("x-github-event")
    delivery = request.headers.get("x-github-delivery")

    if not signature:
        logger.warning("Webhook received without signature")
        raise HTTPException(status_code=400, detail="Missing signature")

    if not settings.github_webhook_secret:
        logger.error("GITHUB_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    if not verify_webhook_signature(body, signature, settings.github_webhook_secret):
        logger.warning(f"Invalid webhook signature for delivery {delivery}")
        raise HTTPException(status_code=403, detail="Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    result = await dispatch_event(event, payload, settings)
    return WebhookResponse(event=event, delivery=delivery, result=result)
