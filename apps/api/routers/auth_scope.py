"""Authentication dependencies for API user scoping."""

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import settings
from services.session_token import DEMO_SESSION_MODE, REAL_SESSION_MODE, decode_session_token


auth_scheme = HTTPBearer(auto_error=False)

SessionMode = Literal["real", "demo"]


@dataclass
class AuthContext:
    """Who is calling, and whether their state lives in the database or in demo fixtures."""

    user_id: str
    email: Optional[str] = None
    mode: SessionMode = REAL_SESSION_MODE
    demo_services: List[str] = field(default_factory=list)

    @property
    def is_demo(self) -> bool:
        return self.mode == DEMO_SESSION_MODE


def _session_token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    # Browser navigations (e.g. starting OAuth) cannot attach a Bearer header.
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AuthContext:
    """Resolve authenticated user from a Bearer session token or the session cookie."""
    token = _session_token_from_request(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Missing session token.")

    try:
        payload = decode_session_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    mode = str(payload.get("mode", REAL_SESSION_MODE))
    services = payload.get("services") if mode == DEMO_SESSION_MODE else None
    return AuthContext(
        user_id=str(payload.get("sub", "")),
        email=str(payload.get("email", "")) or None,
        mode=DEMO_SESSION_MODE if mode == DEMO_SESSION_MODE else REAL_SESSION_MODE,
        demo_services=[str(item) for item in services] if isinstance(services, list) else [],
    )


async def get_optional_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> Optional[AuthContext]:
    """Like get_auth_context, but None instead of 401 so routes can shape their own error body."""
    try:
        return await get_auth_context(request, credentials)
    except HTTPException:
        return None


def require_real_session(auth: AuthContext, action: str) -> None:
    """Reject demo sessions from operations that need persisted accounts."""
    if auth.is_demo:
        raise HTTPException(status_code=403, detail=f"{action} is not available in demo mode.")


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.OAUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=int(settings.JWT_EXPIRATION_HOURS) * 3600,
        path="/",
    )
