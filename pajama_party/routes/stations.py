"""
stations.py — Station directory search.

Routes:
  GET /api/stations/search?q=&limit=&country=

Queries shorter than two characters return an empty result without
touching the database. Matching is a case-insensitive substring match on
name, city and country.
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pajama_party.core.database import get_db
from pajama_party.models.station import StationOut, StationSearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stations", tags=["stations"])

MIN_QUERY_LENGTH = 2


def _doc_to_station(doc: dict) -> StationOut:
    return StationOut(
        id=str(doc.get("station_id") or doc["_id"]),
        name=doc["name"],
        city=doc.get("city", ""),
        country=doc.get("country", ""),
        coordinates=[doc["lng"], doc["lat"]],
    )


@router.get("/search", response_model=StationSearchResponse)
async def search_stations(
    q: str = Query(default=""),
    limit: int = Query(default=10, ge=1, le=50),
    country: Optional[str] = Query(default=None, max_length=2),
    db=Depends(get_db),
):
    query_text = q.strip()
    if len(query_text) < MIN_QUERY_LENGTH or db is None:
        return StationSearchResponse(stations=[], query=query_text, total=0)

    pattern = {"$regex": re.escape(query_text), "$options": "i"}
    query: dict = {"$or": [{"name": pattern}, {"city": pattern}, {"country": pattern}]}
    if country:
        query["country"] = country.strip().upper()

    stations = []
    try:
        cursor = db["stations"].find(query).sort("name", 1).limit(limit)
        async for doc in cursor:
            try:
                stations.append(_doc_to_station(doc))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping malformed station doc: %s", exc)
    except Exception as exc:
        logger.error("Station search failed for %r: %s", query_text, exc)

    return StationSearchResponse(stations=stations, query=query_text, total=len(stations))
