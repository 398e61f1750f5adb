"""
Persistence of per-provider OAuth credentials with transparent refresh.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from cryptography.fernet import InvalidToken
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.provider_token import ProviderToken
from services.connectors import (
    BaseOAuthProvider,
    OAuthTokenResponse,
    OAuthUserProfile,
    get_oauth_provider,
    oauth_provider_supported,
)
from services.crypto import decrypt_token, encrypt_token
from services.errors import PersistenceError, UpstreamError

logger = logging.getLogger(__name__)

# One lock per (user, provider); entries disappear once no refresh holds them.
_refresh_locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()


def _refresh_lock(user_id: str, provider_name: str) -> asyncio.Lock:
    key = (user_id, provider_name)
    lock = _refresh_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[key] = lock
    return lock


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class StoredToken:
    user_id: str
    provider_name: str
    access_token: str
    refresh_token: Optional[str]
    expires_at: Optional[datetime]
    provider_user_id: Optional[str] = None
    provider_email: Optional[str] = None
    provider_metadata: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        current = now or datetime.now(timezone.utc)
        return self.expires_at <= current


class TokenStore:
    """Read/write access to ``provider_tokens`` for one database session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        provider_lookup: Callable[[str], BaseOAuthProvider] = get_oauth_provider,
        refresh_supported: Callable[[str], bool] = oauth_provider_supported,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.db = db
        self._provider_lookup = provider_lookup
        self._refresh_supported = refresh_supported
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _load(self, user_id: str, provider_name: str) -> Optional[ProviderToken]:
        try:
            result = await self.db.execute(
                select(ProviderToken)
                .where(
                    ProviderToken.user_id == user_id,
                    ProviderToken.provider_name == provider_name,
                )
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read {provider_name} token: {exc}") from exc
        return result.scalar_one_or_none()

    def _to_stored(self, row: ProviderToken) -> Optional[StoredToken]:
        try:
            access_token = decrypt_token(row.access_token_encrypted)
            refresh_token = decrypt_token(row.refresh_token_encrypted) if row.refresh_token_encrypted else None
        except InvalidToken:
            logger.warning(
                "Discarding undecryptable %s token for user %s", row.provider_name, row.user_id
            )
            return None
        metadata = row.provider_metadata if isinstance(row.provider_metadata, dict) else {}
        return StoredToken(
            user_id=row.user_id,
            provider_name=row.provider_name,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=as_utc(row.expires_at),
            provider_user_id=row.provider_user_id,
            provider_email=row.provider_email,
            provider_metadata=dict(metadata),
        )

    async def get(self, user_id: str, provider_name: str) -> Optional[StoredToken]:
        """
        Return a usable token for (user, provider), refreshing it when expired.

        Returns None when no token exists, or when it expired and cannot be
        refreshed.
        """
        row = await self._load(user_id, provider_name)
        token = self._to_stored(row) if row is not None else None
        if token is None:
            return None
        if not token.is_expired(self._clock()):
            return token
        if not token.refresh_token or not self._refresh_supported(provider_name):
            return None

        async with _refresh_lock(user_id, provider_name):
            # Another caller may have refreshed while this one waited.
            row = await self._load(user_id, provider_name)
            token = self._to_stored(row) if row is not None else None
            if token is None:
                return None
            if not token.is_expired(self._clock()):
                return token
            if not token.refresh_token:
                return None

            try:
                adapter = self._provider_lookup(provider_name)
                refreshed = await adapter.refresh_token(token.refresh_token)
            except UpstreamError as exc:
                logger.warning("Token refresh failed for user %s provider %s: %s", user_id, provider_name, exc)
                return None

            profile = OAuthUserProfile(
                id=token.provider_user_id or "",
                email=token.provider_email or "",
                metadata=token.provider_metadata,
            )
            logger.info("Refreshed %s token for user %s", provider_name, user_id)
            return await self.put(
                user_id,
                provider_name,
                refreshed,
                profile,
                previous_refresh_token=token.refresh_token,
            )

    async def put(
        self,
        user_id: str,
        provider_name: str,
        token: OAuthTokenResponse,
        profile: OAuthUserProfile,
        *,
        previous_refresh_token: Optional[str] = None,
        commit: bool = True,
    ) -> StoredToken:
        """Upsert the credential row; ``expires_at`` is now + ``expires_in``."""
        expires_at = self._clock() + timedelta(seconds=int(token.expires_in))
        refresh_token = token.refresh_token or previous_refresh_token

        try:
            row = await self._load(user_id, provider_name)
            if row is None:
                row = ProviderToken(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    provider_name=provider_name,
                )
                self.db.add(row)
            row.access_token_encrypted = encrypt_token(token.access_token)
            row.refresh_token_encrypted = encrypt_token(refresh_token) if refresh_token else None
            row.expires_at = expires_at
            row.provider_user_id = profile.id or None
            row.provider_email = profile.email or None
            row.provider_metadata = dict(profile.metadata or {})
            if commit:
                await self.db.commit()
            else:
                await self.db.flush()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise PersistenceError(f"Could not store {provider_name} token: {exc}") from exc

        return StoredToken(
            user_id=user_id,
            provider_name=provider_name,
            access_token=token.access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            provider_user_id=profile.id or None,
            provider_email=profile.email or None,
            provider_metadata=dict(profile.metadata or {}),
        )

    async def delete(self, user_id: str, provider_name: str, *, commit: bool = True) -> bool:
        """Remove the credential row. Returns False when nothing was stored."""
        try:
            result = await self.db.execute(
                delete(ProviderToken).where(
                    ProviderToken.user_id == user_id,
                    ProviderToken.provider_name == provider_name,
                )
            )
            if commit:
                await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise PersistenceError(f"Could not delete {provider_name} token: {exc}") from exc
        return bool(result.rowcount)
