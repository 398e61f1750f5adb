"""Public OAuth connector utilities."""

from services.connectors.catalog import (
    STREAMING_PROVIDERS,
    StreamingProvider,
    get_streaming_provider,
    list_streaming_providers,
)
from services.connectors.providers import (
    MockProvider,
    PrimeVideoOAuthProvider,
    get_oauth_provider,
    oauth_provider_supported,
)
from services.connectors.types import (
    BaseOAuthProvider,
    OAuthClientConfig,
    OAuthTokenResponse,
    OAuthUserProfile,
)

__all__ = [
    "BaseOAuthProvider",
    "MockProvider",
    "OAuthClientConfig",
    "OAuthTokenResponse",
    "OAuthUserProfile",
    "PrimeVideoOAuthProvider",
    "STREAMING_PROVIDERS",
    "StreamingProvider",
    "get_oauth_provider",
    "get_streaming_provider",
    "list_streaming_providers",
    "oauth_provider_supported",
]
