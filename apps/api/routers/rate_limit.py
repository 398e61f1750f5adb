"""Per-client request quotas for the session and OAuth endpoints.

Counters live in Redis when it is reachable and fall back to process-local
fixed windows otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis
from redis.exceptions import RedisError

from config import settings

logger = logging.getLogger(__name__)

# key -> (hits in window, window reset timestamp)
_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock: Optional[asyncio.Lock] = None


@dataclass(frozen=True)
class RateLimitRule:
    prefix: str
    limit: int
    window_seconds: int

    def key_for(self, client_id: str) -> str:
        return f"tv:rate:{self.prefix}:{client_id}"


def _client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _lock() -> asyncio.Lock:
    global _local_lock
    if _local_lock is None:
        _local_lock = asyncio.Lock()
    return _local_lock


async def _redis_hit(key: str, window_seconds: int) -> Tuple[int, int]:
    """Count one hit in Redis; returns (hits, seconds until the window resets)."""
    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        current = await client.incr(key)
        if current == 1:
            await client.expire(key, window_seconds)
        ttl = await client.ttl(key)
    finally:
        await client.aclose()
    return int(current), int(ttl) if ttl and ttl > 0 else window_seconds


async def _local_hit(key: str, window_seconds: int) -> Tuple[int, int]:
    now = time.time()
    async with _lock():
        for stale in [name for name, (_, reset_at) in _local_counters.items() if reset_at <= now]:
            _local_counters.pop(stale, None)
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        count += 1
        _local_counters[key] = (count, reset_at)
    return count, max(int(reset_at - now), 1)


def rate_limit(prefix: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Return a FastAPI dependency that enforces ``limit`` hits per ``window_seconds``."""
    rule = RateLimitRule(prefix=prefix, limit=limit, window_seconds=window_seconds)

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        key = rule.key_for(_client_identifier(request))
        try:
            hits, retry_after = await _redis_hit(key, rule.window_seconds)
        except (RedisError, OSError) as exc:
            logger.debug("Redis rate limit unavailable, using local counters: %s", exc)
            hits, retry_after = await _local_hit(key, rule.window_seconds)

        if hits > rule.limit:
            logger.info("Rate limit exceeded for %s (%d/%d)", key, hits, rule.limit)
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded for {rule.prefix}. Try again later.",
                headers={"Retry-After": str(retry_after)},
            )

    return _dependency
