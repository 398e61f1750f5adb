"""
Redirect-based OAuth handshake for connecting streaming providers.

A connection attempt moves through ``idle -> initiated -> awaiting_callback``
and ends either ``connected`` or ``failed``. Failures never raise to the
caller; they resolve to an outcome carrying a machine-readable reason that
the callback router turns into a redirect.
"""

from __future__ import annotations

import enum
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.oauth_pending_state import OAuthPendingState
from services.connectors import BaseOAuthProvider, get_oauth_provider, get_streaming_provider
from services.errors import PersistenceError, ValidationError
from services.selections import set_selection
from services.token_store import TokenStore, as_utc

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    IDLE = "idle"
    INITIATED = "initiated"
    AWAITING_CALLBACK = "awaiting_callback"
    CONNECTED = "connected"
    FAILED = "failed"


REASON_PROVIDER_DENIED = "provider_denied"
REASON_INVALID_REQUEST = "invalid_request"
REASON_INVALID_STATE = "invalid_state"
REASON_UNSUPPORTED_PROVIDER = "unsupported_provider"
REASON_CONNECTION_FAILED = "connection_failed"


@dataclass(frozen=True)
class ConnectionStart:
    provider: str
    state: str
    authorization_url: str
    expires_at: datetime
    status: ConnectionState = ConnectionState.INITIATED


@dataclass(frozen=True)
class ConnectionOutcome:
    provider: str
    status: ConnectionState
    reason: Optional[str] = None
    detail: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self.status == ConnectionState.CONNECTED

    @property
    def error_code(self) -> Optional[str]:
        """Value surfaced to the browser; provider denials echo the provider's own code."""
        if self.connected:
            return None
        return self.detail or self.reason


def _failed(provider: str, reason: str, detail: Optional[str] = None) -> ConnectionOutcome:
    return ConnectionOutcome(provider=provider, status=ConnectionState.FAILED, reason=reason, detail=detail)


def _same_secret(left: str, right: str) -> bool:
    return secrets.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def initiate_connection(
    db: AsyncSession,
    user_id: str,
    provider: str,
    *,
    provider_lookup: Callable[[str], BaseOAuthProvider] = get_oauth_provider,
    now: Optional[datetime] = None,
) -> ConnectionStart:
    """Issue a fresh state nonce for (user, provider) and build the authorization URL."""
    adapter = provider_lookup(provider)
    current = now or _utcnow()
    state = secrets.token_hex(32)
    expires_at = current + timedelta(seconds=int(settings.OAUTH_STATE_TTL_SECONDS))

    try:
        # A new attempt supersedes any earlier pending record for this provider.
        await db.execute(
            delete(OAuthPendingState).where(
                OAuthPendingState.user_id == user_id,
                OAuthPendingState.provider_name == provider,
            )
            .execution_options(synchronize_session=False)
        )
        db.add(
            OAuthPendingState(
                id=str(uuid.uuid4()),
                user_id=user_id,
                provider_name=provider,
                state=state,
                expires_at=expires_at,
            )
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not persist OAuth state: {exc}") from exc

    logger.info("OAuth initiated for user %s provider %s", user_id, provider)
    return ConnectionStart(
        provider=provider,
        state=state,
        authorization_url=adapter.generate_authorization_url(state),
        expires_at=expires_at,
    )


async def _load_pending(db: AsyncSession, user_id: str, provider: str) -> Optional[OAuthPendingState]:
    result = await db.execute(
        select(OAuthPendingState).where(
            OAuthPendingState.user_id == user_id,
            OAuthPendingState.provider_name == provider,
        )
    )
    return result.scalar_one_or_none()


async def _consume_pending(
    db: AsyncSession,
    user_id: str,
    provider: str,
    state: str,
    now: datetime,
) -> bool:
    """Delete the pending record only if it is still present, matching and live."""
    result = await db.execute(
        delete(OAuthPendingState).where(
            OAuthPendingState.user_id == user_id,
            OAuthPendingState.provider_name == provider,
            OAuthPendingState.state == state,
            OAuthPendingState.expires_at > now,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def complete_connection(
    db: AsyncSession,
    provider: str,
    *,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
    user_id: Optional[str],
    cookie_state: Optional[str],
    provider_lookup: Callable[[str], BaseOAuthProvider] = get_oauth_provider,
    now: Optional[datetime] = None,
) -> ConnectionOutcome:
    """Validate a provider callback, exchange the code, and persist the credential."""
    if error:
        logger.warning("OAuth error for %s: %s", provider, error)
        return _failed(provider, REASON_PROVIDER_DENIED, detail=error)

    if not code or not state or not user_id or not cookie_state:
        logger.warning("Missing OAuth parameters for %s callback", provider)
        return _failed(provider, REASON_INVALID_REQUEST)

    current = now or _utcnow()
    try:
        pending = await _load_pending(db, user_id, provider)
    except SQLAlchemyError as exc:
        logger.warning("Could not load pending OAuth state for %s: %s", provider, exc)
        return _failed(provider, REASON_CONNECTION_FAILED)

    if pending is None or as_utc(pending.expires_at) <= current:
        logger.warning("No live pending OAuth state for user %s provider %s", user_id, provider)
        return _failed(provider, REASON_INVALID_REQUEST)

    if not _same_secret(state, pending.state) or not _same_secret(state, cookie_state):
        logger.warning("Invalid state parameter for user %s provider %s", user_id, provider)
        return _failed(provider, REASON_INVALID_STATE)

    try:
        consumed = await _consume_pending(db, user_id, provider, state, current)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("Could not consume pending OAuth state for %s: %s", provider, exc)
        return _failed(provider, REASON_CONNECTION_FAILED)
    if not consumed:
        # A concurrent callback already used this state.
        return _failed(provider, REASON_INVALID_REQUEST)

    try:
        adapter = provider_lookup(provider)
    except ValidationError:
        return _failed(provider, REASON_UNSUPPORTED_PROVIDER)

    try:
        token = await adapter.exchange_code(code)
        profile = await adapter.fetch_user_profile(token.access_token)
        store = TokenStore(db, provider_lookup=provider_lookup)
        await store.put(user_id, provider, token, profile, commit=False)
        await set_selection(db, user_id, provider, True, commit=False)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.warning("OAuth callback error for %s: %s", provider, exc)
        return _failed(provider, REASON_CONNECTION_FAILED)

    logger.info("Connected %s for user %s", provider, user_id)
    return ConnectionOutcome(provider=provider, status=ConnectionState.CONNECTED)


async def disconnect_provider(db: AsyncSession, user_id: str, provider: str) -> bool:
    """Remove the credential and clear the selection flag. Safe to repeat.

    Ids outside the provider catalog only have their credential removed; no
    selection row is written for them.
    """
    store = TokenStore(db)
    removed = await store.delete(user_id, provider, commit=False)
    if get_streaming_provider(provider) is not None:
        await set_selection(db, user_id, provider, False, commit=False)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not disconnect {provider}: {exc}") from exc
    logger.info("Disconnected %s for user %s (token_removed=%s)", provider, user_id, removed)
    return removed
