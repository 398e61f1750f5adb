import pytest
from httpx import ASGITransport, AsyncClient

from config import settings
from main import app


@pytest.mark.asyncio
async def test_liveness_and_root():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        live = await client.get("/health/live")
        root = await client.get("/")

    assert live.json() == {"alive": True}
    assert root.json()["name"] == "Television API"


@pytest.mark.asyncio
async def test_readiness_with_simulated_prime_oauth(monkeypatch):
    monkeypatch.setattr(settings, "PRIME_OAUTH_SIMULATED", True)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"ready": True}


@pytest.mark.asyncio
async def test_readiness_flags_missing_prime_secret(monkeypatch):
    monkeypatch.setattr(settings, "PRIME_OAUTH_SIMULATED", False)
    monkeypatch.setattr(settings, "PRIME_CLIENT_SECRET", "")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["missing"] == ["PRIME_CLIENT_SECRET"]
