"""OAuth provider adapters and the lookup table that selects them."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Type

import httpx

from config import prime_oauth_simulated, settings
from services.connectors.types import (
    BaseOAuthProvider,
    OAuthClientConfig,
    OAuthTokenResponse,
    OAuthUserProfile,
)
from services.errors import (
    ProfileFetchError,
    TokenExchangeError,
    TokenRefreshError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class PrimeVideoOAuthProvider(BaseOAuthProvider):
    """Login with Amazon authorization-code flow for Prime Video."""

    provider_id = "prime-video"

    def __init__(
        self,
        config: OAuthClientConfig,
        *,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timeout_seconds = float(timeout_seconds or settings.PROVIDER_HTTP_TIMEOUT_SECONDS)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def _request_json(
        self,
        method: str,
        url: str,
        error_cls: Type[UpstreamError],
        action: str,
        **kwargs: Any,
    ) -> Mapping[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise error_cls(f"{action} timed out", provider=self.provider_id) from exc
        except httpx.HTTPError as exc:
            raise error_cls(f"{action} failed: {exc}", provider=self.provider_id) from exc

        if response.status_code >= 400:
            raise error_cls(
                f"{action} failed: {response.status_code} {response.reason_phrase}",
                provider=self.provider_id,
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise error_cls(f"{action} returned invalid JSON", provider=self.provider_id) from exc
        if not isinstance(payload, dict):
            raise error_cls(f"{action} returned an unexpected body", provider=self.provider_id)
        return payload

    async def _token_request(
        self,
        data: Dict[str, str],
        error_cls: Type[UpstreamError],
        action: str,
    ) -> OAuthTokenResponse:
        payload = await self._request_json(
            "POST",
            self.config.token_endpoint,
            error_cls,
            action,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        try:
            return OAuthTokenResponse.from_payload(payload)
        except ValueError as exc:
            raise error_cls(f"{action} failed: {exc}", provider=self.provider_id) from exc

    async def exchange_code(self, code: str) -> OAuthTokenResponse:
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.redirect_uri,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            TokenExchangeError,
            "Token exchange",
        )

    async def refresh_token(self, refresh_token: str) -> OAuthTokenResponse:
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            TokenRefreshError,
            "Token refresh",
        )

    async def fetch_user_profile(self, access_token: str) -> OAuthUserProfile:
        data = await self._request_json(
            "GET",
            self.config.user_info_endpoint,
            ProfileFetchError,
            "User info fetch",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        user_id = str(data.get("user_id") or "").strip()
        if not user_id:
            raise ProfileFetchError("User info fetch returned no user_id", provider=self.provider_id)
        return OAuthUserProfile(
            id=user_id,
            email=str(data.get("email") or ""),
            name=data.get("name"),
            metadata=dict(data),
        )


class MockProvider(BaseOAuthProvider):
    """Deterministic stand-in for a provider that is not wired to a real backend."""

    def __init__(
        self,
        provider_id: str,
        config: OAuthClientConfig,
        *,
        profile_metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.provider_id = provider_id
        self.config = config
        self.profile_metadata = dict(profile_metadata or {})

    @staticmethod
    def _digest(value: str) -> str:
        return hashlib.sha256(value.encode()).hexdigest()[:16]

    async def exchange_code(self, code: str) -> OAuthTokenResponse:
        if not code:
            raise TokenExchangeError("Token exchange failed: empty code", provider=self.provider_id)
        seed = self._digest(f"{self.provider_id}:{code}")
        return OAuthTokenResponse(
            access_token=f"demo-access-token-{seed}",
            refresh_token=f"demo-refresh-token-{seed}",
            expires_in=3600,
            token_type="Bearer",
        )

    async def refresh_token(self, refresh_token: str) -> OAuthTokenResponse:
        if not refresh_token:
            raise TokenRefreshError("Token refresh failed: empty refresh token", provider=self.provider_id)
        return OAuthTokenResponse(
            access_token=f"demo-access-token-refreshed-{self._digest(refresh_token)}",
            refresh_token=refresh_token,
            expires_in=3600,
            token_type="Bearer",
        )

    async def fetch_user_profile(self, access_token: str) -> OAuthUserProfile:
        if not access_token:
            raise ProfileFetchError("User info fetch failed: empty access token", provider=self.provider_id)
        slug = self.provider_id.split("-", 1)[0]
        return OAuthUserProfile(
            id=f"{slug}-demo-user-123",
            email=f"demo@{slug}video.com" if slug == "prime" else f"demo@{slug}.example.com",
            name=f"Demo {slug.capitalize()} User",
            metadata=dict(self.profile_metadata),
        )


def prime_video_client_config() -> OAuthClientConfig:
    return OAuthClientConfig(
        client_id=settings.PRIME_CLIENT_ID,
        client_secret=settings.PRIME_CLIENT_SECRET,
        redirect_uri=settings.PRIME_REDIRECT_URI,
        scope=settings.PRIME_SCOPE,
        authorize_endpoint=settings.PRIME_AUTH_ENDPOINT,
        token_endpoint=settings.PRIME_TOKEN_ENDPOINT,
        user_info_endpoint=settings.PRIME_USER_INFO_ENDPOINT,
    )


def _build_prime_video_provider() -> BaseOAuthProvider:
    config = prime_video_client_config()
    if prime_oauth_simulated():
        return MockProvider(
            "prime-video",
            config,
            profile_metadata={"subscription": "Prime", "region": "US"},
        )
    return PrimeVideoOAuthProvider(config)


OAUTH_PROVIDER_FACTORIES: Dict[str, Callable[[], BaseOAuthProvider]] = {
    "prime-video": _build_prime_video_provider,
}


def oauth_provider_supported(provider_id: str) -> bool:
    return provider_id in OAUTH_PROVIDER_FACTORIES


def get_oauth_provider(provider_id: str) -> BaseOAuthProvider:
    """Return the OAuth adapter registered for ``provider_id``."""
    factory = OAUTH_PROVIDER_FACTORIES.get(provider_id)
    if factory is None:
        raise ValidationError(f"Provider not supported: {provider_id}")
    return factory()
