import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from app.config import Settings
from app.github_client import GitHubAPIError, GitHubClient
from app.logger import get_logger
from app.onboarding import sign_in
from auth.dependencies import (
    ClientFactory,
    CurrentSession,
    get_app_settings,
    get_client_factory,
    get_current_session,
    get_github_client,
)
from auth.jwt_handler import create_access_token, create_state_token, verify_state_token
from auth.oauth import (
    OAuthError,
    build_authorization_url,
    exchange_code_for_token,
    poll_device_token,
    request_device_code,
    validate_personal_access_token,
)
from schemas.auth import (
    DeviceCodeResponse,
    DevicePending,
    DeviceTokenRequest,
    SessionUser,
    Token,
    TokenLogin,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_expire_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
    )


async def _complete_sign_in(
    github_token: str,
    response: Response,
    settings: Settings,
    make_client: ClientFactory,
) -> Token:
    """Run onboarding for a freshly obtained GitHub token and open a session."""
    client = make_client(github_token)
    try:
        user, _ = await client.get_authenticated_user()
        result = await sign_in(client, user, settings)
    except GitHubAPIError as e:
        logger.error(f"Sign-in failed talking to GitHub: {e}")
        raise HTTPException(status_code=502, detail="GitHub request failed")
    finally:
        await client.close()

    if not result.success:
        # only a scope rejection is a permission problem
        rejected = isinstance(result.data, dict) and result.data.get("missing")
        raise HTTPException(
            status_code=403 if rejected else 500, detail=result.error or "Sign-in failed"
        )

    registration = result.data["registration"]
    session_token = create_access_token(
        registration.username, registration.github_id, github_token, settings
    )
    _set_session_cookie(response, session_token, settings)
    logger.info(f"Signed in {registration.username}")
    return Token(
        access_token=session_token,
        username=registration.username,
        handle=registration.handle,
        repository=registration.repository,
        repository_created=result.data["repository_created"],
    )


@router.get("/login")
def login(settings: Settings = Depends(get_app_settings)):
    """Redirect the browser to GitHub's authorization page."""
    if not settings.github_client_id:
        raise HTTPException(status_code=500, detail="GitHub OAuth is not configured")

    nonce = secrets.token_urlsafe(16)
    redirect = RedirectResponse(build_authorization_url(create_state_token(nonce, settings), settings))
    redirect.set_cookie(
        settings.oauth_state_cookie_name, nonce, max_age=600, httponly=True, samesite="lax"
    )
    return redirect


@router.get("/callback", response_model=Token)
async def callback(
    request: Request,
    response: Response,
    code: str = "",
    state: str = "",
    settings: Settings = Depends(get_app_settings),
    make_client: ClientFactory = Depends(get_client_factory),
):
    nonce = request.cookies.get(settings.oauth_state_cookie_name, "")
    if not code or not nonce or not verify_state_token(state, nonce, settings):
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    try:
        github_token = await exchange_code_for_token(code, settings)
    except OAuthError as e:
        logger.warning(f"OAuth code exchange failed: {e.error}")
        raise HTTPException(status_code=400, detail=e.description or e.error)

    response.delete_cookie(settings.oauth_state_cookie_name)
    return await _complete_sign_in(github_token, response, settings, make_client)


@router.post("/device", response_model=DeviceCodeResponse)
async def start_device_flow(settings: Settings = Depends(get_app_settings)):
    """Start a device authorization; show ``userCode`` at ``verificationUri``."""
    try:
        device = await request_device_code(settings)
    except OAuthError as e:
        logger.error(f"Device flow could not start: {e}")
        raise HTTPException(status_code=502, detail=e.description or e.error)
    return DeviceCodeResponse(
        device_code=device.device_code,
        user_code=device.user_code,
        verification_uri=device.verification_uri,
        expires_in=device.expires_in,
        interval=device.interval,
    )


@router.post("/device/token", response_model=Token, responses={202: {"model": DevicePending}})
async def poll_device_flow(
    body: DeviceTokenRequest,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    make_client: ClientFactory = Depends(get_client_factory),
):
    """
    Poll once. Returns 202 while the user has not finished authorizing; the
    client should wait ``interval`` seconds and poll again.
    """
    try:
        result = await poll_device_token(body.device_code, body.interval, settings)
    except OAuthError as e:
        raise HTTPException(status_code=502, detail=e.description or e.error)

    if result.pending:
        pending = DevicePending(status="pending", error=result.error, interval=result.interval)
        return JSONResponse(status_code=202, content=pending.model_dump(by_alias=True))
    if not result.access_token:
        raise HTTPException(status_code=400, detail=result.error)

    return await _complete_sign_in(result.access_token, response, settings, make_client)


@router.post("/token", response_model=Token)
async def login_with_token(
    body: TokenLogin,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    make_client: ClientFactory = Depends(get_client_factory),
):
    """Sign in with a personal access token."""
    try:
        await validate_personal_access_token(body.token, settings)
    except OAuthError as e:
        raise HTTPException(status_code=401, detail=e.description or "Invalid token")
    return await _complete_sign_in(body.token.strip(), response, settings, make_client)


@router.get("/me", response_model=SessionUser)
async def me(
    session: CurrentSession = Depends(get_current_session),
    client: GitHubClient = Depends(get_github_client),
    settings: Settings = Depends(get_app_settings),
):
    try:
        user, scopes = await client.get_authenticated_user()
    except GitHubAPIError as e:
        logger.warning(f"Session token for {session.username} rejected by GitHub: {e}")
        raise HTTPException(status_code=401, detail="GitHub token is no longer valid")

    return SessionUser(
        username=session.username,
        github_id=session.github_id,
        handle=settings.handle_for(session.username),
        repository=settings.social_repository_for(session.username),
        scopes=scopes,
        name=user.get("name"),
        avatar=user.get("avatar_url"),
    )


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    response.delete_cookie(settings.session_cookie_name)
    return {"success": True, "message": "Signed out"}
