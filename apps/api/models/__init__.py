"""Models package."""

from .user import User
from .provider_token import ProviderToken
from .user_service import UserServiceSelection
from .oauth_pending_state import OAuthPendingState
from .live_game import LiveGame
