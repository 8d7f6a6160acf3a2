"""
stats.py — Community statistics.

Routes:
  GET /api/stats: PlatformStats compiled from non-expired dreams

The compiled result is cached in-process for stats_cache_seconds (5 min
by default). Responses carry X-Cache: HIT|MISS and a public Cache-Control
header so CDNs can serve it stale while revalidating.
A failed dreams query answers 503 and is never cached.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response

from pajama_party.core.config import settings
from pajama_party.core.database import get_db
from pajama_party.models.stats import PlatformStats
from pajama_party.services.dream_repository import country_names, load_active_dreams
from pajama_party.services.stats_compiler import StatsCache, compile_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])

# Module-level cache shared by all requests in this process
stats_cache = StatsCache(ttl_seconds=settings.stats_cache_seconds)

_CACHE_CONTROL = "public, max-age=300, stale-while-revalidate=600"


@router.get("", response_model=PlatformStats)
async def get_stats(response: Response, db=Depends(get_db)):
    response.headers["Cache-Control"] = _CACHE_CONTROL

    cached = stats_cache.get()
    if cached is not None:
        response.headers["X-Cache"] = "HIT"
        return cached

    now = datetime.now(timezone.utc)
    if db is None:
        # Not cached: the next request after the database returns gets real numbers
        response.headers["X-Cache"] = "MISS"
        return compile_stats([], now)

    try:
        dreams = await load_active_dreams(db, now, raise_on_error=True)
    except Exception:
        # 503 keeps clients on their last good stats; nothing is cached
        raise HTTPException(status_code=503, detail="Statistics temporarily unavailable")

    stats = compile_stats(dreams, now, await country_names(db))
    stats_cache.set(stats)
    logger.debug("Compiled stats: %d dreams, %d stations", stats.total_dreams, stats.active_stations)

    response.headers["X-Cache"] = "MISS"
    return stats
