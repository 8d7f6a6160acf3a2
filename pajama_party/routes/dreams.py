"""
dreams.py — Dream submission and listing routes.

Routes:
  GET  /api/dreams                         — non-expired dreams, newest first (email never exposed)
  POST /api/dreams                         — submit a dream (10/minute per IP)
  GET  /api/dreams/aggregated-by-station   — critical-mass readiness per origin station

HOW A SUBMISSION WORKS
──────────────────────
1. The body is parsed loosely (DreamCreate accepts dreamer_name|dreamerName,
   origin_station|from, destination_city|to).
2. dream_validation.validate_dream() collects every broken rule → 400 with details.
3. Missing coordinates are filled from the station directory when the
   station or city is known.
4. The document is stored with expires_at = created_at + 30 days.
5. The dream count at the same origin_station decides the community message,
   which is returned once and never stored.

TESTING
───────
  pytest tests/test_dreams.py -v

  curl -X POST http://localhost:8000/api/dreams \\
    -H 'Content-Type: application/json' \\
    -d '{"dreamer_name": "Anna", "origin_station": "Berlin Hauptbahnhof", "destination_city": "Barcelona"}'
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from pajama_party.core.config import settings
from pajama_party.core.database import get_db
from pajama_party.core.rate_limit import DREAM_SUBMIT_LIMIT, limiter
from pajama_party.models.dream import DreamCreate, DreamListResponse, DreamSubmitResponse
from pajama_party.models.station import AggregatedStationsResponse, ReadinessSummary
from pajama_party.services.community import active_filter, community_message, count_station_dreams
from pajama_party.services.dream_repository import (
    doc_to_dream,
    geocode_city,
    geocode_station,
    load_active_dreams,
)
from pajama_party.services.dream_validation import sanitize_dream, validate_dream
from pajama_party.services.readiness import aggregate_readiness

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dreams", tags=["dreams"])

_MAX_LIMIT = 1000


# ── Helpers ───────────────────────────────────────────────────────────────────

async def _fill_coordinates(db, doc: dict) -> None:
    """Geocode origin/destination from the station directory when the client sent none."""
    if doc["origin_lat"] is None:
        station = await geocode_station(db, doc["origin_station"])
        if station:
            doc["origin_lat"] = station.get("lat")
            doc["origin_lng"] = station.get("lng")
            doc["origin_country"] = doc["origin_country"] or station.get("country")
    if doc["destination_lat"] is None:
        station = await geocode_city(db, doc["destination_city"])
        if station:
            doc["destination_lat"] = station.get("lat")
            doc["destination_lng"] = station.get("lng")
            doc["destination_country"] = doc["destination_country"] or station.get("country")


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("", response_model=DreamListResponse)
async def list_dreams(
    limit:   int = Query(default=100, ge=1),
    offset:  int = Query(default=0, ge=0),
    country: Optional[str] = Query(default=None, max_length=2),
    station: Optional[str] = Query(default=None, max_length=255),
    db=Depends(get_db),
):
    """Non-expired dreams, newest first. `limit` is capped at 1000."""
    limit = min(limit, _MAX_LIMIT)
    if db is None:
        return DreamListResponse(dreams=[], total=0, limit=limit, offset=offset, has_more=False)

    query = active_filter(datetime.now(timezone.utc))
    if country:
        query["origin_country"] = country.strip().upper()
    if station:
        query["origin_station"] = {"$regex": re.escape(station.strip()), "$options": "i"}

    total = await db["dreams"].count_documents(query)
    cursor = db["dreams"].find(query, {"email": 0}).sort("created_at", -1).skip(offset).limit(limit)

    dreams = []
    async for doc in cursor:
        try:
            dreams.append(doc_to_dream(doc))
        except Exception as exc:
            logger.warning("Skipping malformed dream doc: %s", exc)

    return DreamListResponse(
        dreams=dreams,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(dreams) < total,
    )


@router.post("", response_model=DreamSubmitResponse, status_code=201)
@limiter.limit(DREAM_SUBMIT_LIMIT)
async def submit_dream(request: Request, payload: DreamCreate, db=Depends(get_db)):
    """Validate, geocode and store a dream; report community formation at its origin."""
    errors = validate_dream(payload)
    if errors:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Validation failed",
                "message": "Please check your input data",
                "details": errors,
            },
        )
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    now = datetime.now(timezone.utc)
    doc = sanitize_dream(payload, now, settings.dream_ttl_days)
    await _fill_coordinates(db, doc)

    result = await db["dreams"].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Dream stored: %s → %s", doc["origin_station"], doc["destination_city"])

    count = await count_station_dreams(db, doc["origin_station"], now)
    return DreamSubmitResponse(
        dream=doc_to_dream(doc),
        community_message=community_message(count, doc["origin_station"]),
        message="Dream added successfully! Your pajama party adventure awaits!",
        timestamp=now,
    )


@router.get("/aggregated-by-station", response_model=AggregatedStationsResponse)
async def aggregated_by_station(
    min_dreams: int = Query(default=2, ge=1, alias="minDreams"),
    db=Depends(get_db),
):
    """Readiness for every origin station with at least `minDreams` non-expired dreams."""
    if db is None:
        empty = ReadinessSummary(total_stations=0, ready_stations=0, total_dreams=0, ready_percentage=0)
        return AggregatedStationsResponse(stations=[], summary=empty)

    now = datetime.now(timezone.utc)
    dreams = await load_active_dreams(db, now)
    stations, summary = aggregate_readiness(dreams, now, min_dreams=min_dreams)
    return AggregatedStationsResponse(stations=stations, summary=summary)
