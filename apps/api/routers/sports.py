"""
Live sports endpoints backed by the aggregator and its read cache.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context, require_real_session
from services.aggregator import SportsAggregator
from services.content import prime_video_client
from services.errors import PersistenceError
from services.token_store import TokenStore

logger = logging.getLogger(__name__)

router = APIRouter()


class SyncSportsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_services: Optional[List[str]] = Field(default=None, alias="selectedServices")


def get_aggregator() -> SportsAggregator:
    return SportsAggregator()


def _parse_services_param(services: Optional[str]) -> Optional[List[str]]:
    """Comma-separated ids; an absent or blank value means every known service."""
    if services is None:
        return None
    parsed = [item.strip() for item in services.split(",") if item.strip()]
    return parsed or None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/live")
async def get_live_sports(
    services: Optional[str] = None,
    refresh: bool = False,
    db: AsyncSession = Depends(get_db),
    aggregator: SportsAggregator = Depends(get_aggregator),
):
    """Cached events for the selected services, or a fresh aggregation when ``refresh`` is set."""
    selected = aggregator.resolve_services(_parse_services_param(services))
    try:
        if refresh:
            logger.info("Fetching fresh sports content for %s", selected)
            games = await aggregator.fetch_live_content(selected)
            if not selected:
                logger.info("No known services requested, leaving live games cache untouched")
            else:
                try:
                    await aggregator.sync_content_to_database(db, games)
                except PersistenceError as exc:
                    logger.warning("Live games cache not updated: %s", exc)
            return {
                "games": [game.to_dict() for game in games],
                "services": selected,
                "lastUpdated": _now_iso(),
                "source": "live_fetch",
            }

        try:
            cached = await aggregator.read_cached(db, selected)
        except PersistenceError as exc:
            logger.warning("Error fetching cached games, falling back to live fetch: %s", exc)
            games = await aggregator.fetch_live_content(selected)
            return {
                "games": [game.to_dict() for game in games],
                "services": selected,
                "lastUpdated": _now_iso(),
                "source": "live_fetch_fallback",
            }

        return {
            "games": [game.to_dict() for game in cached.games],
            "services": selected,
            "lastUpdated": cached.last_updated.isoformat() if cached.last_updated else _now_iso(),
            "source": "database_cache",
        }
    except Exception:
        logger.exception("Error in /sports/live")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch sports content"})


@router.post("/live")
async def sync_live_sports(
    request: SyncSportsRequest,
    db: AsyncSession = Depends(get_db),
    aggregator: SportsAggregator = Depends(get_aggregator),
):
    """Force a fresh aggregation and replace the cache."""
    selected = aggregator.resolve_services(request.selected_services)
    logger.info("Syncing fresh content for services: %s", selected)
    try:
        games = await aggregator.fetch_live_content(selected)
        count = await aggregator.sync_content_to_database(db, games)
    except Exception:
        logger.exception("Error syncing sports content")
        return JSONResponse(status_code=500, content={"error": "Failed to sync sports content"})

    return {
        "success": True,
        "gamesCount": count,
        "services": selected,
        "lastUpdated": _now_iso(),
    }


@router.get("/prime-video/content")
async def get_prime_video_content(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """The caller's Prime Video live and on-demand content, when their account is connected."""
    require_real_session(auth, "Prime Video content")
    client = prime_video_client()
    try:
        games = await client.fetch_for_user(TokenStore(db), auth.user_id, datetime.now(timezone.utc))
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {
        "connected": bool(games),
        "games": [game.to_dict() for game in games],
        "lastUpdated": _now_iso(),
    }
