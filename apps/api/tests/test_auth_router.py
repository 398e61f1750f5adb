import time

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import settings
from database import Base, get_db
from main import app
from models.user import User
from services.session_token import decode_session_token


IDP_SECRET = "identity-provider-test-secret-0123456789"


def _identity_token(sub, email, *, secret=IDP_SECRET, audience="authenticated", expires_in=3600, **metadata):
    now = int(time.time())
    claims = {"sub": sub, "email": email, "aud": audience, "iat": now, "exp": now + expires_in}
    if metadata:
        claims["user_metadata"] = metadata
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest_asyncio.fixture
async def auth_client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", IDP_SECRET)
    db_path = tmp_path / "auth.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, session_maker

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


async def _users(session_maker):
    async with session_maker() as session:
        return (await session.execute(select(User))).scalars().all()


@pytest.mark.asyncio
async def test_sync_creates_user_and_issues_session(auth_client):
    client, session_maker = auth_client
    token = _identity_token("idp-123", "viewer@example.com", full_name="Viewer")
    response = await client.post("/auth/sync", json={"access_token": token})

    assert response.status_code == 200
    payload = response.json()
    assert payload["user_id"] == "idp-123"
    assert payload["email"] == "viewer@example.com"
    assert payload["mode"] == "real"
    assert decode_session_token(payload["session_token"])["sub"] == "idp-123"
    assert any(
        header.startswith(f"{settings.SESSION_COOKIE_NAME}=")
        for header in response.headers.get_list("set-cookie")
    )

    users = await _users(session_maker)
    assert len(users) == 1
    assert users[0].email == "viewer@example.com"
    assert users[0].name == "Viewer"


@pytest.mark.asyncio
async def test_sync_is_an_upsert_by_subject(auth_client):
    client, session_maker = auth_client
    token = _identity_token("idp-same", "same@example.com")
    first = await client.post("/auth/sync", json={"access_token": token})
    second = await client.post("/auth/sync", json={"access_token": token, "name": "Renamed"})

    assert first.json()["user_id"] == second.json()["user_id"] == "idp-same"
    users = await _users(session_maker)
    assert len(users) == 1
    assert users[0].name == "Renamed"


@pytest.mark.asyncio
async def test_sync_without_access_token_is_unauthorized(auth_client):
    client, session_maker = auth_client
    missing = await client.post("/auth/sync", json={})
    legacy_body = await client.post("/auth/sync", json={"user_id": "victim", "email": "victim@example.com"})

    assert missing.status_code == 401
    assert legacy_body.status_code == 401
    assert "set-cookie" not in legacy_body.headers
    assert await _users(session_maker) == []


@pytest.mark.asyncio
async def test_sync_rejects_forged_or_expired_tokens(auth_client):
    client, session_maker = auth_client
    forged = _identity_token("attacker", "victim@example.com", secret="not-the-identity-provider-secret")
    wrong_audience = _identity_token("idp-1", "one@example.com", audience="anon")
    expired = _identity_token("idp-1", "one@example.com", expires_in=-60)
    no_email = jwt.encode(
        {"sub": "idp-1", "aud": "authenticated", "exp": int(time.time()) + 60}, IDP_SECRET, algorithm="HS256"
    )

    for token in (forged, wrong_audience, expired, no_email, "not-a-jwt"):
        response = await client.post("/auth/sync", json={"access_token": token})
        assert response.status_code == 401

    assert await _users(session_maker) == []


@pytest.mark.asyncio
async def test_sync_cannot_take_over_another_account(auth_client):
    client, session_maker = auth_client
    victim = await client.post(
        "/auth/sync", json={"access_token": _identity_token("victim-id", "victim@example.com")}
    )
    attacker = await client.post(
        "/auth/sync",
        json={
            "access_token": _identity_token("attacker-id", "attacker@example.com"),
            "user_id": "victim-id",
            "email": "victim@example.com",
        },
    )

    assert victim.json()["user_id"] == "victim-id"
    assert attacker.status_code == 200
    assert attacker.json()["user_id"] == "attacker-id"
    assert attacker.json()["email"] == "attacker@example.com"
    users = {user.id: user.email for user in await _users(session_maker)}
    assert users == {"victim-id": "victim@example.com", "attacker-id": "attacker@example.com"}


@pytest.mark.asyncio
async def test_sync_unavailable_without_verification_secret(auth_client, monkeypatch):
    client, session_maker = auth_client
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", "")
    response = await client.post(
        "/auth/sync", json={"access_token": _identity_token("idp-1", "one@example.com")}
    )
    assert response.status_code == 401
    assert await _users(session_maker) == []


@pytest.mark.asyncio
async def test_me_returns_user_and_empty_selections(auth_client):
    client, _ = auth_client
    synced = await client.post(
        "/auth/sync", json={"access_token": _identity_token("idp-9", "nine@example.com")}
    )
    token = synced.json()["session_token"]

    response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["user_id"] == "idp-9"
    assert payload["mode"] == "real"
    assert payload["oauth_connections"] == []
    assert payload["services"]["prime-video"] is False


@pytest.mark.asyncio
async def test_me_without_session_is_unauthorized(auth_client):
    client, _ = auth_client
    response = await client.get("/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_session_cookie_authenticates_requests(auth_client):
    client, _ = auth_client
    synced = await client.post(
        "/auth/sync", json={"access_token": _identity_token("cookie-user", "cookie@example.com")}
    )
    token = synced.json()["session_token"]

    response = await client.get("/auth/me", headers={"Cookie": f"{settings.SESSION_COOKIE_NAME}={token}"})
    assert response.status_code == 200
    assert response.json()["user_id"] == "cookie-user"


@pytest.mark.asyncio
async def test_demo_session_uses_default_services(auth_client):
    client, session_maker = auth_client
    response = await client.post("/auth/demo")

    assert response.status_code == 200
    payload = response.json()
    assert payload["mode"] == "demo"
    assert payload["user_id"].startswith("demo-")

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {payload['session_token']}"})
    services = me.json()["services"]
    assert me.json()["mode"] == "demo"
    assert [key for key, value in services.items() if value] == ["espn-plus", "youtube-tv", "hulu", "peacock"]

    async with session_maker() as session:
        assert (await session.execute(select(User))).scalars().all() == []


@pytest.mark.asyncio
async def test_demo_session_rejects_unknown_services(auth_client):
    client, _ = auth_client
    response = await client.post("/auth/demo", json={"services": ["netflix"]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_demo_disabled_returns_404(auth_client, monkeypatch):
    client, _ = auth_client
    monkeypatch.setattr(settings, "ENABLE_DEMO_MODE", False)
    response = await client.post("/auth/demo")
    assert response.status_code == 404
