"""
analytics.py — Consented analytics events and advocacy statistics.

Routes:
  POST /api/analytics/events     — store one sanitised event (100/minute per IP)
  GET  /api/analytics/advocacy   — route or station advocacy stats computed from dreams

Events are only ever sent by clients whose user opted in (see
pajama_party.client.analytics). When MongoDB is down the event is
accepted and dropped (stored=false) so tracking never breaks a page.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from pajama_party.core.database import get_db
from pajama_party.core.rate_limit import ANALYTICS_LIMIT, limiter
from pajama_party.models.analytics import (
    AnalyticsEventIn,
    AnalyticsEventResponse,
    RouteAdvocacy,
    StationAdvocacy,
)
from pajama_party.services.advocacy import route_advocacy, split_route_id, station_advocacy
from pajama_party.services.dream_repository import load_active_dreams
from pajama_party.services.event_sanitizer import InvalidEventError, sanitize_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.post("/events", response_model=AnalyticsEventResponse, status_code=201)
@limiter.limit(ANALYTICS_LIMIT)
async def track_event(request: Request, payload: AnalyticsEventIn, db=Depends(get_db)):
    now = datetime.now(timezone.utc)
    try:
        doc = sanitize_event(payload, now)
    except InvalidEventError as exc:
        raise HTTPException(status_code=400, detail={"error": "Invalid event", "message": str(exc)})

    if db is None:
        return AnalyticsEventResponse(success=True, stored=False)

    try:
        await db["analytics_events"].insert_one(doc)
    except Exception as exc:
        logger.error("Storing analytics event %r failed: %s", doc["event"], exc)
        return AnalyticsEventResponse(success=True, stored=False)
    return AnalyticsEventResponse(success=True, stored=True)


@router.get("/advocacy", response_model=Union[RouteAdvocacy, StationAdvocacy])
async def advocacy(
    route_id:   Optional[str] = Query(default=None, max_length=520),
    station_id: Optional[str] = Query(default=None, max_length=255),
    db=Depends(get_db),
):
    """
    Advocacy stats for a route ("Origin→Destination") or a station (its name).

    Exactly one of route_id / station_id must be given.
    """
    if bool(route_id) == bool(station_id):
        raise HTTPException(status_code=400, detail="Provide exactly one of route_id or station_id")

    now = datetime.now(timezone.utc)
    dreams = await load_active_dreams(db, now) if db is not None else []

    if route_id:
        pair = split_route_id(route_id)
        if pair is None:
            raise HTTPException(status_code=400, detail="route_id must look like 'Origin→Destination'")
        return route_advocacy(pair[0], pair[1], dreams)
    return station_advocacy(station_id.strip(), dreams)
