"""
Authentication router for session sync, demo sessions, and current-user lookup.
"""

import secrets
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models.provider_token import ProviderToken
from models.user import User
from routers.auth_scope import AuthContext, get_auth_context, set_session_cookie
from routers.rate_limit import rate_limit
from services.errors import PersistenceError, UnauthorizedError, ValidationError
from services.identity_token import verify_identity_token
from services.selections import list_selections, selection_map, validate_selection_update
from services.session_token import create_session_token

router = APIRouter()

DEFAULT_DEMO_SERVICES = ["espn-plus", "youtube-tv", "hulu", "peacock"]


class SyncSessionRequest(BaseModel):
    access_token: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class DemoSessionRequest(BaseModel):
    services: Optional[List[str]] = None


class SessionResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    mode: str
    session_token: str
    session_expires_at: int


class CurrentUserResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    mode: str
    services: Dict[str, bool] = Field(default_factory=dict)
    oauth_connections: List[str] = Field(default_factory=list)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Get the current viewer and their streaming service selections."""
    if auth.is_demo:
        return CurrentUserResponse(
            user_id=auth.user_id,
            email=auth.email,
            name="Demo User",
            mode=auth.mode,
            services=selection_map(auth.demo_services),
        )

    result = await db.execute(select(User).where(User.id == auth.user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        services = await list_selections(db, user.id)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    token_result = await db.execute(
        select(ProviderToken.provider_name).where(ProviderToken.user_id == user.id)
    )

    return CurrentUserResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        picture=user.picture,
        mode=auth.mode,
        services=services,
        oauth_connections=sorted(token_result.scalars().all()),
    )


@router.post(
    "/sync",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit("auth_sync", limit=20, window_seconds=60))],
)
async def sync_session(
    request: SyncSessionRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """
    Persist a frontend identity-provider session into the users table and issue an API session.
    The account is chosen by the verified access token, never by the request body.
    """
    try:
        identity = verify_identity_token(request.access_token)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user_result = await db.execute(select(User).where(User.id == identity.user_id))
    user = user_result.scalar_one_or_none()
    if not user:
        user_result = await db.execute(select(User).where(User.email == identity.email))
        user = user_result.scalar_one_or_none()

    name = request.name or identity.name
    picture = request.picture or identity.picture
    if not user:
        user = User(
            id=identity.user_id,
            email=identity.email,
            name=name,
            picture=picture,
        )
        db.add(user)
    else:
        user.email = identity.email
        if name:
            user.name = name
        if picture:
            user.picture = picture

    await db.commit()
    await db.refresh(user)
    session = create_session_token(user.id, user.email)
    set_session_cookie(response, session["token"])

    return SessionResponse(
        user_id=user.id,
        email=user.email,
        mode="real",
        session_token=session["token"],
        session_expires_at=session["expires_at"],
    )


@router.post("/demo", response_model=SessionResponse)
async def start_demo_session(
    response: Response,
    request: Optional[DemoSessionRequest] = None,
):
    """Issue a demo session whose service selection lives in the token itself."""
    if not settings.ENABLE_DEMO_MODE:
        raise HTTPException(status_code=404, detail="Demo mode is disabled.")

    requested = request.services if request and request.services is not None else DEFAULT_DEMO_SERVICES
    try:
        services = validate_selection_update({service: True for service in requested})
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    user_id = f"demo-{secrets.token_hex(8)}"
    session = create_session_token(user_id, "demo@television.app", demo_services=list(services))
    set_session_cookie(response, session["token"])
    return SessionResponse(
        user_id=user_id,
        email="demo@television.app",
        mode="demo",
        session_token=session["token"],
        session_expires_at=session["expires_at"],
    )


@router.post("/logout")
async def logout(response: Response, _auth: AuthContext = Depends(get_auth_context)):
    """Clear the session cookie; Bearer tokens simply stop being sent by the client."""
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"message": "Logged out successfully"}
