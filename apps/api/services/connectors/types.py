"""OAuth provider adapter contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional
from urllib.parse import urlencode


AuthType = Literal["oauth", "mock"]


@dataclass(frozen=True)
class OAuthClientConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    scope: str
    authorize_endpoint: str
    token_endpoint: str
    user_info_endpoint: str


@dataclass(frozen=True)
class OAuthTokenResponse:
    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "OAuthTokenResponse":
        """Normalize a provider token endpoint JSON body."""
        access_token = str(payload.get("access_token") or "").strip()
        if not access_token:
            raise ValueError("Token response missing access_token")
        refresh_token = payload.get("refresh_token")
        return cls(
            access_token=access_token,
            expires_in=int(payload.get("expires_in") or 3600),
            token_type=str(payload.get("token_type") or "Bearer"),
            refresh_token=str(refresh_token) if refresh_token else None,
        )


@dataclass(frozen=True)
class OAuthUserProfile:
    id: str
    email: str
    name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class BaseOAuthProvider(ABC):
    """Authorization-code flow capabilities for one streaming provider."""

    provider_id: str
    config: OAuthClientConfig

    def generate_authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.config.client_id,
            "response_type": "code",
            "redirect_uri": self.config.redirect_uri,
            "scope": self.config.scope,
            "state": state,
        }
        return f"{self.config.authorize_endpoint}?{urlencode(params)}"

    @abstractmethod
    async def exchange_code(self, code: str) -> OAuthTokenResponse:
        raise NotImplementedError

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> OAuthTokenResponse:
        raise NotImplementedError

    @abstractmethod
    async def fetch_user_profile(self, access_token: str) -> OAuthUserProfile:
        raise NotImplementedError
