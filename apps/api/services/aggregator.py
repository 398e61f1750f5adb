"""
Sports aggregator: fans out to provider content clients, merges, orders,
and keeps the ``live_games`` read cache in sync.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.live_game import LiveGame
from services.content import CONTENT_CLIENTS, ContentClient, LiveSportsGame
from services.errors import PersistenceError
from services.token_store import as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedGames:
    games: List[LiveSportsGame]
    last_updated: Optional[datetime]


def sort_games(games: Iterable[LiveSportsGame]) -> List[LiveSportsGame]:
    """Live events first, then ascending start time; ties keep input order."""
    return sorted(games, key=lambda game: (not game.is_live, game.start_time))


def _split_teams(title: str) -> List[str]:
    matchup = title.split(": ", 1)[-1]
    if " vs " in matchup:
        return [team.strip() for team in matchup.split(" vs ")]
    return [title]


def cached_row_to_game(row: LiveGame, now: datetime) -> LiveSportsGame:
    start = as_utc(row.start_time)
    return LiveSportsGame(
        id=row.event_id or row.id,
        title=row.match,
        league=row.league,
        teams=_split_teams(row.match),
        start_time=start,
        is_live=bool(row.is_live),
        is_upcoming=start > now,
        network=row.network,
        streaming_service=row.app,
        deep_link=row.link,
        description=f"Watch on {row.network}",
    )


class SportsAggregator:
    """Merges per-provider content into one ordered view."""

    def __init__(
        self,
        clients: Optional[Dict[str, ContentClient]] = None,
        *,
        fetch_timeout_seconds: Optional[float] = None,
    ) -> None:
        self.clients = dict(CONTENT_CLIENTS if clients is None else clients)
        self.fetch_timeout_seconds = float(fetch_timeout_seconds or settings.CONTENT_FETCH_TIMEOUT_SECONDS)

    @property
    def known_services(self) -> List[str]:
        return list(self.clients)

    def resolve_services(self, service_ids: Optional[Sequence[str]]) -> List[str]:
        """Drop unknown ids (silently) and default to every known service."""
        if service_ids is None:
            return self.known_services
        resolved: List[str] = []
        for service_id in service_ids:
            cleaned = str(service_id or "").strip()
            if cleaned in self.clients and cleaned not in resolved:
                resolved.append(cleaned)
        return resolved

    async def _fetch_one(self, service_id: str, now: datetime) -> List[LiveSportsGame]:
        client = self.clients[service_id]
        try:
            return await asyncio.wait_for(client.fetch_live(now), timeout=self.fetch_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Content fetch for %s timed out after %.1fs", service_id, self.fetch_timeout_seconds)
        except Exception as exc:
            logger.warning("Error fetching content for %s: %s", service_id, exc)
        return []

    async def fetch_live_content(
        self,
        service_ids: Optional[Sequence[str]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> List[LiveSportsGame]:
        """Fetch every selected provider concurrently; one failure never sinks the rest."""
        current = now or datetime.now(timezone.utc)
        selected = self.resolve_services(service_ids)
        if not selected:
            return []
        batches = await asyncio.gather(*(self._fetch_one(service_id, current) for service_id in selected))
        merged = [game for batch in batches for game in batch]
        return sort_games(merged)

    async def sync_content_to_database(self, db: AsyncSession, games: Sequence[LiveSportsGame]) -> int:
        """Replace the whole cache with ``games`` in a single transaction."""
        rows = [
            LiveGame(
                id=str(uuid.uuid4()),
                event_id=game.id,
                league=game.league,
                match=game.title,
                network=game.network,
                app=game.streaming_service,
                link=game.deep_link,
                start_time=game.start_time,
                is_live=game.is_live,
            )
            for game in games
        ]
        try:
            await db.execute(delete(LiveGame).execution_options(synchronize_session=False))
            db.add_all(rows)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Error syncing games to database: %s", exc)
            raise PersistenceError(f"Could not sync live games cache: {exc}") from exc

        logger.info("Synced %d games to database", len(rows))
        return len(rows)

    async def read_cached(
        self,
        db: AsyncSession,
        service_ids: Sequence[str],
        *,
        now: Optional[datetime] = None,
    ) -> CachedGames:
        """Cached rows ordered by start time, limited to ``service_ids``."""
        current = now or datetime.now(timezone.utc)
        try:
            result = await db.execute(select(LiveGame).order_by(LiveGame.start_time.asc()))
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read live games cache: {exc}") from exc

        wanted = set(service_ids)
        last_updated = as_utc(rows[0].created_at) if rows and rows[0].created_at else None
        return CachedGames(
            games=[cached_row_to_game(row, current) for row in rows if row.app in wanted],
            last_updated=last_updated,
        )
