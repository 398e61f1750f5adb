from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, get_db
from main import app
from models.live_game import LiveGame
from models.user import User
from routers.sports import get_aggregator
from services.aggregator import SportsAggregator
from services.connectors import OAuthTokenResponse, OAuthUserProfile
from services.errors import PersistenceError
from services.session_token import create_session_token
from services.token_store import TokenStore


USER_ID = "sports-fan"
AUTH_HEADER = {"Authorization": f"Bearer {create_session_token(USER_ID, 'fan@example.com')['token']}"}


@pytest_asyncio.fixture
async def sports_client(tmp_path):
    db_path = tmp_path / "sports.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_maker() as session:
        session.add(User(id=USER_ID, email="fan@example.com"))
        await session.commit()

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, session_maker

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_aggregator, None)
    await engine.dispose()


def _assert_ordered(games):
    keys = [(not game["isLive"], datetime.fromisoformat(game["startTime"])) for game in games]
    assert keys == sorted(keys)


@pytest.mark.asyncio
async def test_refresh_then_cache_for_selected_services(sports_client):
    client, session_maker = sports_client
    async with session_maker() as session:
        session.add(
            LiveGame(
                league="NBA",
                match="Stale: A vs B",
                network="X",
                app="espn-plus",
                link="espn://live/stale",
                start_time=datetime.now(timezone.utc),
            )
        )
        await session.commit()

    fresh = await client.get("/sports/live", params={"services": "prime-video,espn-plus", "refresh": "true"})
    assert fresh.status_code == 200
    payload = fresh.json()
    assert payload["source"] == "live_fetch"
    assert payload["services"] == ["prime-video", "espn-plus"]
    assert len(payload["games"]) == 3
    assert {game["streamingService"] for game in payload["games"]} == {"prime-video", "espn-plus"}
    _assert_ordered(payload["games"])
    prime = [game for game in payload["games"] if game["streamingService"] == "prime-video"]
    assert prime[0]["deepLink"].startswith("aiv://aiv/play")

    async with session_maker() as session:
        rows = (await session.execute(select(LiveGame))).scalars().all()
    assert sorted(row.event_id for row in rows) == sorted(game["id"] for game in payload["games"])
    assert {row.app for row in rows} == {"prime-video", "espn-plus"}

    cached = await client.get("/sports/live", params={"services": "prime-video,espn-plus"})
    assert cached.status_code == 200
    cached_payload = cached.json()
    assert cached_payload["source"] == "database_cache"
    assert sorted(game["id"] for game in cached_payload["games"]) == sorted(game["id"] for game in payload["games"])

    espn_only = await client.get("/sports/live", params={"services": "espn-plus"})
    assert {game["streamingService"] for game in espn_only.json()["games"]} == {"espn-plus"}
    assert len(espn_only.json()["games"]) == 2


@pytest.mark.asyncio
async def test_unknown_services_are_ignored(sports_client):
    client, _ = sports_client
    response = await client.get("/sports/live", params={"services": "netflix,peacock", "refresh": "true"})
    assert response.status_code == 200
    assert response.json()["services"] == ["peacock"]
    assert {game["streamingService"] for game in response.json()["games"]} == {"peacock"}


@pytest.mark.asyncio
async def test_cache_read_failure_falls_back_to_live_fetch(sports_client):
    client, _ = sports_client

    class BrokenCacheAggregator(SportsAggregator):
        async def read_cached(self, db, service_ids, *, now=None):
            raise PersistenceError("cache unavailable")

    app.dependency_overrides[get_aggregator] = lambda: BrokenCacheAggregator()
    response = await client.get("/sports/live", params={"services": "youtube-tv"})

    assert response.status_code == 200
    assert response.json()["source"] == "live_fetch_fallback"
    assert len(response.json()["games"]) == 2


@pytest.mark.asyncio
async def test_refresh_still_returns_games_when_cache_write_fails(sports_client):
    client, _ = sports_client

    class ReadOnlyAggregator(SportsAggregator):
        async def sync_content_to_database(self, db, games):
            raise PersistenceError("read-only")

    app.dependency_overrides[get_aggregator] = lambda: ReadOnlyAggregator()
    response = await client.get("/sports/live", params={"refresh": "true"})

    assert response.status_code == 200
    assert response.json()["source"] == "live_fetch"
    assert len(response.json()["games"]) == 7


@pytest.mark.asyncio
async def test_post_sync_reports_count_and_services(sports_client):
    client, _ = sports_client
    response = await client.post("/sports/live", json={"selectedServices": ["espn-plus", "bogus"]})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["gamesCount"] == 2
    assert payload["services"] == ["espn-plus"]
    assert payload["lastUpdated"]

    cached = await client.get("/sports/live")
    assert cached.json()["source"] == "database_cache"
    assert len(cached.json()["games"]) == 2


@pytest.mark.asyncio
async def test_post_sync_failure_returns_500(sports_client):
    client, _ = sports_client

    class ReadOnlyAggregator(SportsAggregator):
        async def sync_content_to_database(self, db, games):
            raise PersistenceError("read-only")

    app.dependency_overrides[get_aggregator] = lambda: ReadOnlyAggregator()
    response = await client.post("/sports/live", json={})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to sync sports content"}


@pytest.mark.asyncio
async def test_prime_video_content_requires_connection(sports_client):
    client, session_maker = sports_client

    unauthenticated = await client.get("/sports/prime-video/content")
    assert unauthenticated.status_code == 401

    disconnected = await client.get("/sports/prime-video/content", headers=AUTH_HEADER)
    assert disconnected.status_code == 200
    assert disconnected.json()["connected"] is False
    assert disconnected.json()["games"] == []

    async with session_maker() as session:
        await TokenStore(session).put(
            USER_ID,
            "prime-video",
            OAuthTokenResponse(access_token="at-1", refresh_token="rt-1", expires_in=3600),
            OAuthUserProfile(id="prime-demo-user-123", email="demo@primevideo.com"),
        )

    connected = await client.get("/sports/prime-video/content", headers=AUTH_HEADER)
    payload = connected.json()
    assert payload["connected"] is True
    assert [game["type"] for game in payload["games"]] == ["game", "replay"]
    assert all(game["streamingService"] == "prime-video" for game in payload["games"])


@pytest.mark.asyncio
async def test_prime_video_content_rejects_demo_sessions(sports_client):
    client, _ = sports_client
    demo = create_session_token("demo-1", "demo@television.app", demo_services=["prime-video"])["token"]
    response = await client.get("/sports/prime-video/content", headers={"Authorization": f"Bearer {demo}"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_blank_services_param_means_every_service(sports_client):
    client, session_maker = sports_client
    seeded = await client.get("/sports/live", params={"services": "espn-plus", "refresh": "true"})
    assert len(seeded.json()["games"]) == 2

    cached = await client.get("/sports/live", params={"services": ""})
    assert cached.json()["source"] == "database_cache"
    assert set(cached.json()["services"]) == {"prime-video", "espn-plus", "youtube-tv", "peacock", "paramount-plus"}

    for blank in ("", " , ,"):
        response = await client.get("/sports/live", params={"services": blank, "refresh": "true"})
        assert response.status_code == 200
        assert len(response.json()["services"]) == 5
        assert len(response.json()["games"]) == 7

    async with session_maker() as session:
        rows = (await session.execute(select(LiveGame))).scalars().all()
    assert len(rows) == 7


@pytest.mark.asyncio
async def test_refresh_with_only_unknown_services_keeps_cache(sports_client):
    client, session_maker = sports_client
    await client.get("/sports/live", params={"refresh": "true"})

    response = await client.get("/sports/live", params={"services": "netflix", "refresh": "true"})
    assert response.status_code == 200
    assert response.json()["services"] == []
    assert response.json()["games"] == []

    async with session_maker() as session:
        rows = (await session.execute(select(LiveGame))).scalars().all()
    assert len(rows) == 7
