"""Catalog of the streaming providers the app knows about."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from services.connectors.types import AuthType


@dataclass(frozen=True)
class ProviderFeatures:
    live_games: bool
    on_demand: bool
    dvr: bool
    multiple_streams: bool


@dataclass(frozen=True)
class StreamingProvider:
    id: str
    name: str
    description: str
    auth_type: AuthType
    is_implemented: bool
    requires_subscription: bool
    features: ProviderFeatures
    deep_link_prefix: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


STREAMING_PROVIDERS: Dict[str, StreamingProvider] = {
    provider.id: provider
    for provider in (
        StreamingProvider(
            id="prime-video",
            name="Prime Video",
            description="Thursday Night Football & exclusive games",
            auth_type="oauth",
            is_implemented=True,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=False, multiple_streams=True),
            deep_link_prefix="aiv://aiv/play",
        ),
        StreamingProvider(
            id="espn-plus",
            name="ESPN+",
            description="Live sports, originals & exclusives",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=False, multiple_streams=False),
            deep_link_prefix="espn://live",
        ),
        StreamingProvider(
            id="youtube-tv",
            name="YouTubeTV",
            description="Live TV with 100+ channels",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=True, multiple_streams=True),
            deep_link_prefix="youtubetv://live",
        ),
        StreamingProvider(
            id="hulu",
            name="Hulu",
            description="Shows, movies & live TV",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=True, multiple_streams=False),
        ),
        StreamingProvider(
            id="disney-plus",
            name="Disney+",
            description="Disney, Marvel, Star Wars",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=False, on_demand=True, dvr=False, multiple_streams=True),
        ),
        StreamingProvider(
            id="peacock",
            name="Peacock",
            description="NBCUniversal sports & Olympics",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=False, multiple_streams=True),
            deep_link_prefix="peacocktv://live",
        ),
        StreamingProvider(
            id="directv-stream",
            name="DirecTV Stream",
            description="Live & on-demand streaming",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=True, multiple_streams=True),
        ),
        StreamingProvider(
            id="sling",
            name="Sling",
            description="Customizable live TV packages",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=False, dvr=True, multiple_streams=False),
        ),
        StreamingProvider(
            id="paramount-plus",
            name="Paramount+",
            description="CBS Sports & Champions League",
            auth_type="mock",
            is_implemented=False,
            requires_subscription=True,
            features=ProviderFeatures(live_games=True, on_demand=True, dvr=False, multiple_streams=True),
            deep_link_prefix="paramountplus://live",
        ),
    )
}


def get_streaming_provider(provider_id: str) -> Optional[StreamingProvider]:
    return STREAMING_PROVIDERS.get(str(provider_id or "").strip())


def list_streaming_providers() -> List[StreamingProvider]:
    return list(STREAMING_PROVIDERS.values())
