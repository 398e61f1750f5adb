"""Error taxonomy shared by the connection flow, token store, and aggregator."""


class TelevisionError(Exception):
    """Base class for domain errors raised by service modules."""


class ValidationError(TelevisionError):
    """Missing or mismatched request parameters, or an unsupported provider."""


class UnauthorizedError(TelevisionError):
    """No authenticated session is available for the operation."""


class UpstreamError(TelevisionError):
    """A provider endpoint answered with a non-success status or timed out."""

    def __init__(self, message: str, *, provider: str = "", status_code: int = 0) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class TokenExchangeError(UpstreamError):
    """Authorization code could not be exchanged for tokens."""


class TokenRefreshError(UpstreamError):
    """Refresh token was rejected by the provider."""


class ProfileFetchError(UpstreamError):
    """Provider user profile could not be loaded."""


class ContentFetchError(UpstreamError):
    """Provider content listing could not be loaded."""


class NotFoundError(TelevisionError):
    """Requested record does not exist."""


class PersistenceError(TelevisionError):
    """A store read or write failed."""
