import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base
from models.live_game import LiveGame
from services.aggregator import SportsAggregator, sort_games
from services.content import CONTENT_CLIENTS, ContentClient, LiveSportsGame
from services.errors import PersistenceError


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _game(game_id, service, *, hours=0.0, live=False, league="NFL"):
    start = NOW + timedelta(hours=hours)
    return LiveSportsGame(
        id=game_id,
        title=f"{league}: Home vs Away",
        league=league,
        teams=["Home", "Away"],
        start_time=start,
        is_live=live,
        is_upcoming=start > NOW,
        network="Network",
        streaming_service=service,
        deep_link=f"{service}://live/{game_id}",
    )


class StaticClient(ContentClient):
    deep_link_template = "static://{content_id}"

    def __init__(self, provider_id, games):
        self.provider_id = provider_id
        self.games = games

    async def fetch_live(self, now):
        return list(self.games)


class FailingClient(ContentClient):
    deep_link_template = "failing://{content_id}"

    def __init__(self, provider_id):
        self.provider_id = provider_id

    async def fetch_live(self, now):
        raise RuntimeError("upstream exploded")


class SlowClient(ContentClient):
    deep_link_template = "slow://{content_id}"

    def __init__(self, provider_id):
        self.provider_id = provider_id

    async def fetch_live(self, now):
        await asyncio.sleep(1)
        return [_game("slow-1", self.provider_id)]


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'games.db'}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield maker
    await engine.dispose()


def test_sort_games_puts_live_first_then_start_time():
    games = [
        _game("later", "a", hours=5),
        _game("live-late", "a", hours=-1, live=True),
        _game("soon", "a", hours=1),
        _game("live-early", "a", hours=-2, live=True),
    ]
    assert [game.id for game in sort_games(games)] == ["live-early", "live-late", "soon", "later"]


def test_sort_games_is_stable_for_ties():
    games = [_game("first", "a", hours=1), _game("second", "b", hours=1)]
    assert [game.id for game in sort_games(games)] == ["first", "second"]


def test_resolve_services_defaults_to_all_and_drops_unknown():
    aggregator = SportsAggregator()
    assert aggregator.resolve_services(None) == list(CONTENT_CLIENTS)
    assert aggregator.resolve_services(["espn-plus", "netflix", "espn-plus", "hulu"]) == ["espn-plus"]
    assert aggregator.resolve_services([]) == []


@pytest.mark.asyncio
async def test_fetch_merges_and_sorts_selected_services():
    aggregator = SportsAggregator(
        {
            "a": StaticClient("a", [_game("a-later", "a", hours=3), _game("a-live", "a", hours=-1, live=True)]),
            "b": StaticClient("b", [_game("b-soon", "b", hours=1)]),
            "c": StaticClient("c", [_game("c-other", "c", hours=2)]),
        }
    )

    games = await aggregator.fetch_live_content(["a", "b", "unknown"], now=NOW)

    assert [game.id for game in games] == ["a-live", "b-soon", "a-later"]
    assert {game.streaming_service for game in games} <= {"a", "b"}


@pytest.mark.asyncio
async def test_failing_client_does_not_sink_the_rest():
    aggregator = SportsAggregator(
        {
            "good": StaticClient("good", [_game("g1", "good", hours=1)]),
            "bad": FailingClient("bad"),
        }
    )

    games = await aggregator.fetch_live_content(["bad", "good"], now=NOW)

    assert [game.id for game in games] == ["g1"]


@pytest.mark.asyncio
async def test_slow_client_is_cut_off_by_timeout():
    aggregator = SportsAggregator(
        {
            "good": StaticClient("good", [_game("g1", "good", hours=1)]),
            "slow": SlowClient("slow"),
        },
        fetch_timeout_seconds=0.05,
    )

    games = await aggregator.fetch_live_content(now=NOW)

    assert [game.id for game in games] == ["g1"]


@pytest.mark.asyncio
async def test_default_clients_return_well_formed_games():
    games = await SportsAggregator().fetch_live_content(now=NOW)

    assert len(games) == 7
    assert games == sort_games(games)
    for game in games:
        assert game.streaming_service in CONTENT_CLIENTS
        assert game.deep_link
        assert game.is_upcoming == (game.start_time > NOW)


@pytest.mark.asyncio
async def test_sync_replaces_cache_and_read_filters_by_service(session_maker):
    aggregator = SportsAggregator()
    async with session_maker() as session:
        await aggregator.sync_content_to_database(session, [_game("old", "espn-plus", hours=1)])
        count = await aggregator.sync_content_to_database(
            session,
            [_game("new-2", "espn-plus", hours=2), _game("new-1", "peacock", hours=1)],
        )

    assert count == 2
    async with session_maker() as session:
        rows = (await session.execute(select(LiveGame))).scalars().all()
        cached = await aggregator.read_cached(session, ["espn-plus", "peacock"], now=NOW)
        filtered = await aggregator.read_cached(session, ["espn-plus"], now=NOW)

    assert sorted(row.event_id for row in rows) == ["new-1", "new-2"]
    assert [game.id for game in cached.games] == ["new-1", "new-2"]
    assert cached.last_updated is not None
    assert [game.id for game in filtered.games] == ["new-2"]
    assert filtered.games[0].teams == ["Home", "Away"]
    assert filtered.games[0].deep_link == "espn-plus://live/new-2"


@pytest.mark.asyncio
async def test_failed_sync_keeps_previous_cache(session_maker):
    aggregator = SportsAggregator()
    async with session_maker() as session:
        await aggregator.sync_content_to_database(session, [_game("keep-me", "espn-plus", hours=1)])

    async with session_maker() as session:
        with pytest.raises(PersistenceError):
            await aggregator.sync_content_to_database(
                session,
                [_game("fine", "espn-plus", hours=1), _game("broken", "espn-plus", hours=2, league=None)],
            )

    async with session_maker() as session:
        rows = (await session.execute(select(LiveGame))).scalars().all()
    assert [row.event_id for row in rows] == ["keep-me"]


@pytest.mark.asyncio
async def test_read_cached_on_empty_cache(session_maker):
    async with session_maker() as session:
        cached = await SportsAggregator().read_cached(session, ["espn-plus"], now=NOW)
    assert cached.games == []
    assert cached.last_updated is None
