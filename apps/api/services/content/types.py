"""Content records returned by provider content clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LiveSportsGame:
    id: str
    title: str
    league: str
    start_time: datetime
    is_live: bool
    is_upcoming: bool
    network: str
    streaming_service: str
    deep_link: str
    teams: List[str] = field(default_factory=list)
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    content_type: str = "game"

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape consumed by the web client."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "league": self.league,
            "teams": list(self.teams),
            "startTime": self.start_time.isoformat(),
            "isLive": self.is_live,
            "isUpcoming": self.is_upcoming,
            "network": self.network,
            "streamingService": self.streaming_service,
            "deepLink": self.deep_link,
            "type": self.content_type,
        }
        if self.end_time is not None:
            payload["endTime"] = self.end_time.isoformat()
        if self.description:
            payload["description"] = self.description
        if self.thumbnail_url:
            payload["thumbnailUrl"] = self.thumbnail_url
        return payload
