"""
impact.py — Advocacy impact dashboard.

Routes:
  GET /api/impact/dreams-count     totals, today's dreams, participation rate
  GET /api/impact/growth-chart     last 30 days, cumulative
  GET /api/impact/routes-popular   top routes, origins and destinations
  GET /api/impact/stations-ready   stations tiered by pyjama party participants

Every number comes from non-expired dreams and signups (services/impact.py).
Without a database, or when the dreams read fails, the routes answer 503 so
dashboards keep showing their last good numbers.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Response

from pajama_party.core.database import PYJAMA_PARTY_SIGNUPS, get_db
from pajama_party.models.impact import DreamsCount, GrowthChart, PopularRoutes, StationsReady
from pajama_party.services import impact
from pajama_party.services.community import active_filter
from pajama_party.services.dream_repository import load_active_dreams, load_active_signups

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/impact", tags=["impact"])

_SHORT_CACHE = "public, max-age=300, stale-while-revalidate=600"
_MEDIUM_CACHE = "public, max-age=600, stale-while-revalidate=1200"
_LONG_CACHE = "public, max-age=900, stale-while-revalidate=1800"


def _require_db(db):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return db


async def _dreams(db, now: datetime) -> list[dict]:
    try:
        return await load_active_dreams(db, now, raise_on_error=True)
    except Exception:
        raise HTTPException(status_code=503, detail="Impact data temporarily unavailable")


async def _signups(db, now: datetime) -> list[dict]:
    try:
        return await load_active_signups(db, now, raise_on_error=True)
    except Exception:
        raise HTTPException(status_code=503, detail="Impact data temporarily unavailable")


@router.get("/dreams-count", response_model=DreamsCount)
async def dreams_count(response: Response, db=Depends(get_db)):
    db = _require_db(db)
    now = datetime.now(timezone.utc)
    dreams = await _dreams(db, now)
    try:
        signups = await db[PYJAMA_PARTY_SIGNUPS].count_documents(active_filter(now))
    except Exception as exc:
        logger.warning("Counting pyjama party signups failed: %s", exc)
        signups = 0
    response.headers["Cache-Control"] = _SHORT_CACHE
    return impact.dreams_count(dreams, signups, now)


@router.get("/growth-chart", response_model=GrowthChart)
async def growth_chart(response: Response, db=Depends(get_db)):
    db = _require_db(db)
    now = datetime.now(timezone.utc)
    chart = impact.growth_chart(await _dreams(db, now), await _signups(db, now), now)
    response.headers["Cache-Control"] = _LONG_CACHE
    return chart


@router.get("/routes-popular", response_model=PopularRoutes)
async def routes_popular(response: Response, db=Depends(get_db)):
    db = _require_db(db)
    now = datetime.now(timezone.utc)
    routes = impact.popular_routes(await _dreams(db, now), now)
    response.headers["Cache-Control"] = _MEDIUM_CACHE
    return routes


@router.get("/stations-ready", response_model=StationsReady)
async def stations_ready(response: Response, db=Depends(get_db)):
    db = _require_db(db)
    now = datetime.now(timezone.utc)
    report = impact.stations_ready(await _dreams(db, now), await _signups(db, now), now)
    response.headers["Cache-Control"] = _MEDIUM_CACHE
    return report
