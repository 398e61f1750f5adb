"""Provider content clients and the records they return."""

from services.content.clients import (
    CONTENT_CLIENTS,
    PRIME_VIDEO_CLIENT,
    ContentClient,
    PrimeVideoContentClient,
    ScheduledContentClient,
    ScheduledFixture,
    get_content_client,
    prime_video_client,
)
from services.content.types import LiveSportsGame

__all__ = [
    "CONTENT_CLIENTS",
    "PRIME_VIDEO_CLIENT",
    "ContentClient",
    "LiveSportsGame",
    "PrimeVideoContentClient",
    "ScheduledContentClient",
    "ScheduledFixture",
    "get_content_client",
    "prime_video_client",
]
