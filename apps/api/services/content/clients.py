"""
Per-provider content clients.

None of the providers expose a public sports listing API yet, so each client
derives a realistic schedule from the reference clock. The shape matches what
a real client would return, letting the aggregator stay unaware of the source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from services.content import schedule
from services.content.types import LiveSportsGame
from services.token_store import TokenStore


@dataclass(frozen=True)
class ScheduledFixture:
    content_id: str
    link_id: str
    title: str
    league: str
    kickoff: Callable[[datetime], datetime]
    duration_hours: float
    network: str
    teams: Sequence[str] = field(default_factory=tuple)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None


class ContentClient(ABC):
    provider_id: str
    deep_link_template: str

    def build_deep_link(self, content_id: str) -> str:
        return self.deep_link_template.format(content_id=content_id)

    @abstractmethod
    async def fetch_live(self, now: datetime) -> List[LiveSportsGame]:
        """Live and upcoming events, relative to ``now``."""
        raise NotImplementedError


class ScheduledContentClient(ContentClient):
    """Content client backed by a fixed weekly fixture list."""

    def __init__(self, provider_id: str, deep_link_template: str, fixtures: Sequence[ScheduledFixture]) -> None:
        self.provider_id = provider_id
        self.deep_link_template = deep_link_template
        self.fixtures = tuple(fixtures)

    def _to_game(self, fixture: ScheduledFixture, now: datetime) -> LiveSportsGame:
        start = fixture.kickoff(now)
        return LiveSportsGame(
            id=fixture.content_id,
            title=fixture.title,
            league=fixture.league,
            teams=list(fixture.teams),
            start_time=start,
            end_time=schedule.add_hours(start, fixture.duration_hours),
            is_live=schedule.is_currently_airing(start, now, fixture.duration_hours),
            is_upcoming=start > now,
            network=fixture.network,
            streaming_service=self.provider_id,
            deep_link=self.build_deep_link(fixture.link_id),
            description=fixture.description,
            thumbnail_url=fixture.thumbnail_url,
        )

    async def fetch_live(self, now: datetime) -> List[LiveSportsGame]:
        return [self._to_game(fixture, now) for fixture in self.fixtures]


class PrimeVideoContentClient(ScheduledContentClient):
    """Prime Video schedule plus replays, and per-user access through the token store."""

    def __init__(self) -> None:
        super().__init__(
            "prime-video",
            "aiv://aiv/play?gti={content_id}",
            (
                ScheduledFixture(
                    content_id="prime-tnf-steelers-browns",
                    link_id="tnf-steelers-browns",
                    title="Thursday Night Football: Steelers vs Browns",
                    league="NFL",
                    teams=("Pittsburgh Steelers", "Cleveland Browns"),
                    kickoff=lambda now: schedule.next_weekday_at(now, schedule.THURSDAY, 20),
                    duration_hours=3,
                    network="Prime Video",
                    description="AFC North rivalry on Thursday Night Football",
                    thumbnail_url="https://m.media-amazon.com/images/I/91gKzMHYURL._SL1500_.jpg",
                ),
            ),
        )

    async def fetch_on_demand(self, now: datetime) -> List[LiveSportsGame]:
        start = now - timedelta(days=3)
        return [
            LiveSportsGame(
                id="prime-replay-chiefs-bengals",
                title="NFL Replay: Chiefs vs Bengals",
                league="NFL",
                teams=["Kansas City Chiefs", "Cincinnati Bengals"],
                start_time=start,
                is_live=False,
                is_upcoming=False,
                network="Prime Video",
                streaming_service=self.provider_id,
                deep_link=self.build_deep_link("replay-chiefs-bengals"),
                description="Full game replay from last Thursday Night Football",
                content_type="replay",
            )
        ]

    async def fetch_for_user(self, token_store: TokenStore, user_id: str, now: datetime) -> List[LiveSportsGame]:
        """Live plus on-demand content, or nothing when the user holds no usable token."""
        token = await token_store.get(user_id, self.provider_id)
        if token is None or not token.access_token:
            return []
        return [*await self.fetch_live(now), *await self.fetch_on_demand(now)]


PRIME_VIDEO_CLIENT = PrimeVideoContentClient()


def _build_clients() -> Dict[str, ContentClient]:
    clients: List[ContentClient] = [
        PRIME_VIDEO_CLIENT,
        ScheduledContentClient(
            "espn-plus",
            "espn://live/{content_id}",
            (
                ScheduledFixture(
                    content_id="espn-ufc-fight-night",
                    link_id="ufc-fight-night-main",
                    title="UFC Fight Night: Main Event",
                    league="UFC",
                    teams=("Fighter A", "Fighter B"),
                    kickoff=lambda now: schedule.next_weekday_at(now, schedule.SATURDAY, 20),
                    duration_hours=4,
                    network="ESPN+",
                    description="Exclusive UFC coverage on ESPN+",
                ),
                ScheduledFixture(
                    content_id="espn-college-basketball",
                    link_id="duke-unc-basketball",
                    title="College Basketball: Duke vs UNC",
                    league="College Basketball",
                    teams=("Duke Blue Devils", "UNC Tar Heels"),
                    kickoff=lambda now: schedule.tomorrow_at(now, 19),
                    duration_hours=2,
                    network="ESPN+",
                    description="Classic rivalry game",
                ),
            ),
        ),
        ScheduledContentClient(
            "youtube-tv",
            "youtubetv://live/{content_id}",
            (
                ScheduledFixture(
                    content_id="ytv-nfl-sunday",
                    link_id="nfl-redzone-sunday",
                    title="NFL RedZone: Sunday Action",
                    league="NFL",
                    teams=("Multiple Games",),
                    kickoff=lambda now: schedule.next_weekday_at(now, schedule.SUNDAY, 13),
                    duration_hours=7,
                    network="NFL RedZone",
                    description="Every touchdown from every game",
                ),
                ScheduledFixture(
                    content_id="ytv-nba-lakers-warriors",
                    link_id="nba-lakers-warriors",
                    title="NBA: Lakers vs Warriors",
                    league="NBA",
                    teams=("Los Angeles Lakers", "Golden State Warriors"),
                    kickoff=lambda now: schedule.tomorrow_at(now, 20, 30),
                    duration_hours=2.5,
                    network="TNT",
                    description="Pacific Division showdown",
                ),
            ),
        ),
        ScheduledContentClient(
            "peacock",
            "peacocktv://live/{content_id}",
            (
                ScheduledFixture(
                    content_id="peacock-epl-arsenal-chelsea",
                    link_id="epl-arsenal-chelsea",
                    title="Premier League: Arsenal vs Chelsea",
                    league="Premier League",
                    teams=("Arsenal", "Chelsea"),
                    kickoff=lambda now: schedule.next_weekday_at(now, schedule.SUNDAY, 9, 30),
                    duration_hours=2,
                    network="Peacock",
                    description="London Derby on Peacock exclusive",
                ),
            ),
        ),
        ScheduledContentClient(
            "paramount-plus",
            "paramountplus://live/{content_id}",
            (
                ScheduledFixture(
                    content_id="paramount-champions-league",
                    link_id="ucl-real-madrid-city",
                    title="Champions League: Real Madrid vs Manchester City",
                    league="Champions League",
                    teams=("Real Madrid", "Manchester City"),
                    kickoff=lambda now: schedule.tomorrow_at(now, 15),
                    duration_hours=2,
                    network="Paramount+",
                    description="Champions League knockout stage",
                ),
            ),
        ),
    ]
    return {client.provider_id: client for client in clients}


CONTENT_CLIENTS: Dict[str, ContentClient] = _build_clients()


def get_content_client(provider_id: str) -> Optional[ContentClient]:
    return CONTENT_CLIENTS.get(provider_id)


def prime_video_client() -> PrimeVideoContentClient:
    return PRIME_VIDEO_CLIENT
