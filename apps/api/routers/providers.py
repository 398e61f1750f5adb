"""
Provider connection endpoints: start OAuth, receive the callback, disconnect.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings, settings_redirect_url
from database import get_db
from routers.auth_scope import AuthContext, get_optional_auth_context
from routers.rate_limit import rate_limit
from services.connectors import oauth_provider_supported
from services.errors import PersistenceError
from services.oauth_flow import REASON_CONNECTION_FAILED, complete_connection, disconnect_provider, initiate_connection

logger = logging.getLogger(__name__)

router = APIRouter()


def state_cookie_name(provider: str) -> str:
    return f"oauth_state_{provider}"


def user_cookie_name(provider: str) -> str:
    return f"oauth_user_{provider}"


def _set_handshake_cookie(response: RedirectResponse, name: str, value: str) -> None:
    response.set_cookie(
        name,
        value,
        httponly=True,
        secure=settings.OAUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=int(settings.OAUTH_STATE_TTL_SECONDS),
        path="/",
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get(
    "/providers/{provider}",
    dependencies=[Depends(rate_limit("oauth_initiate", limit=30, window_seconds=60))],
)
async def initiate_provider_oauth(
    provider: str,
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Start the OAuth handshake and redirect the browser to the provider."""
    if auth is None:
        return _error(401, "Unauthorized")
    if auth.is_demo:
        return _error(403, "Provider connections are not available in demo mode")
    if not oauth_provider_supported(provider):
        return _error(400, "Provider not supported")

    try:
        start = await initiate_connection(db, auth.user_id, provider)
    except PersistenceError:
        logger.exception("OAuth initiation error for %s", provider)
        return _error(500, "Failed to initiate OAuth")

    response = RedirectResponse(start.authorization_url, status_code=307)
    _set_handshake_cookie(response, state_cookie_name(provider), start.state)
    _set_handshake_cookie(response, user_cookie_name(provider), auth.user_id)
    return response


@router.get("/callback/{provider}")
async def provider_oauth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Finish the handshake. Always answers with a redirect to the settings page."""
    try:
        outcome = await complete_connection(
            db,
            provider,
            code=code,
            state=state,
            error=error,
            user_id=request.cookies.get(user_cookie_name(provider)),
            cookie_state=request.cookies.get(state_cookie_name(provider)),
        )
        if outcome.connected:
            target = settings_redirect_url(provider_connected=provider)
        else:
            target = settings_redirect_url(provider_error=outcome.error_code or REASON_CONNECTION_FAILED)
    except Exception:
        logger.exception("OAuth callback error for %s", provider)
        target = settings_redirect_url(provider_error=REASON_CONNECTION_FAILED)

    response = RedirectResponse(target, status_code=307)
    response.delete_cookie(state_cookie_name(provider), path="/")
    response.delete_cookie(user_cookie_name(provider), path="/")
    return response


@router.delete("/providers/{provider}")
async def disconnect_provider_oauth(
    provider: str,
    auth: Optional[AuthContext] = Depends(get_optional_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Forget the provider credential and mark the service disconnected."""
    if auth is None:
        return _error(401, "Unauthorized")
    if auth.is_demo:
        return _error(403, "Provider connections are not available in demo mode")
    try:
        await disconnect_provider(db, auth.user_id, provider)
    except PersistenceError:
        logger.exception("Provider disconnection error for %s", provider)
        return _error(500, "Failed to disconnect provider")
    return {"success": True}
