from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import admin, auth, follow, health, posts, users, webhook
from app.config import settings
from app.logger import get_logger, setup_logging

logger = get_logger("main")


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    setup_logging(settings.log_level, settings.log_file or None)
    logger.info("Starting application...")
    if not settings.github_client_id:
        logger.warning("GITHUB_CLIENT_ID not set; OAuth sign-in is disabled")
    if not settings.github_webhook_secret:
        logger.warning("GITHUB_WEBHOOK_SECRET not set; webhook deliveries will be refused")
    logger.info(f"User registry: {settings.registry_owner}/{settings.registry_repo}:{settings.registry_path}")

    yield

    logger.info("Application shutdown complete")


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="GitSocial Backend",
        description="Social network API whose data lives in users' GitHub repositories",
        version="1.0.0",
        lifespan=app_lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(follow.router)
    app.include_router(users.router)
    app.include_router(admin.router)
    app.include_router(webhook.router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
