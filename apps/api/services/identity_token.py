"""Verification of identity-provider access tokens presented to /auth/sync."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings
from services.errors import UnauthorizedError


@dataclass(frozen=True)
class IdentityClaims:
    user_id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def verify_identity_token(token: Optional[str]) -> IdentityClaims:
    """Check the signature, audience and expiry of an identity-provider JWT.

    The account identity (subject and email) is taken only from the verified
    claims. Raises UnauthorizedError for a missing, forged, expired or
    incomplete token, and when no verification secret is configured.
    """
    secret = (settings.SUPABASE_JWT_SECRET or "").strip()
    if not secret:
        raise UnauthorizedError("Identity token verification is not configured.")
    if not token or not token.strip():
        raise UnauthorizedError("Missing identity token.")

    try:
        payload: Dict[str, Any] = jwt.decode(
            token.strip(),
            secret,
            algorithms=[settings.SUPABASE_JWT_ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as exc:
        raise UnauthorizedError("Invalid or expired identity token.") from exc

    subject = str(payload.get("sub") or "").strip()
    email = str(payload.get("email") or "").strip()
    if not subject or not email:
        raise UnauthorizedError("Identity token is missing subject or email.")

    metadata = payload.get("user_metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}
    name = metadata.get("full_name") or metadata.get("name")
    picture = metadata.get("avatar_url") or metadata.get("picture")

    return IdentityClaims(
        user_id=subject,
        email=email,
        name=str(name) if name else None,
        picture=str(picture) if picture else None,
    )
