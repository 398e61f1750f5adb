"""Session token helpers for backend-authenticated user scope."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "tv_session"
DEMO_SESSION_MODE = "demo"
REAL_SESSION_MODE = "real"


def create_session_token(
    user_id: str,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
    *,
    demo_services: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Create a signed session token payload for API authentication.

    Passing ``demo_services`` issues a demo session whose service selection
    travels inside the token instead of the database.
    """
    now = datetime.now(timezone.utc)
    ttl_hours = int(expires_hours or settings.JWT_EXPIRATION_HOURS or 24)
    expires_at = now + timedelta(hours=max(ttl_hours, 1))
    claims: Dict[str, Any] = {
        "sub": user_id,
        "type": SESSION_TOKEN_TYPE,
        "mode": REAL_SESSION_MODE,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if email:
        claims["email"] = email
    if demo_services is not None:
        claims["mode"] = DEMO_SESSION_MODE
        claims["services"] = sorted({str(item) for item in demo_services})

    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return {
        "token": token,
        "expires_at": int(expires_at.timestamp()),
    }


def decode_session_token(token: str) -> Dict[str, Any]:
    """Decode and validate a signed session token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    token_type = str(payload.get("type", "")).strip()
    if token_type != SESSION_TOKEN_TYPE:
        raise ValueError("Invalid session token type.")

    subject = str(payload.get("sub", "")).strip()
    if not subject:
        raise ValueError("Session token missing subject.")

    mode = str(payload.get("mode", REAL_SESSION_MODE)).strip()
    if mode not in {REAL_SESSION_MODE, DEMO_SESSION_MODE}:
        raise ValueError("Invalid session mode.")

    return payload
