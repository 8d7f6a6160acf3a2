"""
places.py — Curated destination places for the Dream layer.

Routes:
  GET /api/places/search?q=&country=&type=&limit=&offset=&lat=&lon=&radius=
  GET /api/places/{place_id}?include_related=&include_stations=

Text search matches name, description and tags. When lat/lon are given
the result is filtered to `radius` km (great-circle distance) and sorted
nearest first; otherwise places are ordered by priority_score.

A place detail adds up to six related places (same country or a shared
tag, by priority) and the railway stations within 50 km, nearest first.
"""

import logging
import math
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pajama_party.core.database import get_db
from pajama_party.models.place import NearbyStation, Place, PlaceDetail, PlaceDetailResponse, PlaceSearchResponse
from pajama_party.services.geo import haversine_km

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/places", tags=["places"])

_RELATED_LIMIT = 6
_NEARBY_RADIUS_KM = 50.0
_NEARBY_LIMIT = 10
_KM_PER_DEGREE = 111.0


def _doc_to_place(doc: dict) -> Place:
    return Place(
        place_id=str(doc.get("place_id") or doc["_id"]),
        name=doc["name"],
        brief_description=doc.get("brief_description", ""),
        country=doc.get("country", ""),
        latitude=doc["latitude"],
        longitude=doc["longitude"],
        place_type=doc.get("place_type", "city"),
        priority_score=doc.get("priority_score", 0),
        tags=doc.get("tags", []),
        image_url=doc.get("image_url"),
    )


@router.get("/search", response_model=PlaceSearchResponse)
async def search_places(
    q:       Optional[str]   = Query(default=None, max_length=100),
    country: Optional[str]   = Query(default=None, max_length=2),
    type:    Optional[str]   = Query(default=None, max_length=30),
    limit:   int             = Query(default=50, ge=1, le=1000),
    offset:  int             = Query(default=0, ge=0),
    lat:     Optional[float] = Query(default=None, ge=-90, le=90),
    lon:     Optional[float] = Query(default=None, ge=-180, le=180),
    radius:  float           = Query(default=100.0, gt=0, le=5000),
    db=Depends(get_db),
):
    if (lat is None) != (lon is None):
        raise HTTPException(status_code=400, detail="lat and lon must be given together")
    if db is None:
        return PlaceSearchResponse(places=[], total=0, limit=limit, offset=offset, has_more=False)

    query: dict = {}
    if q and q.strip():
        pattern = {"$regex": re.escape(q.strip()), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"brief_description": pattern}, {"tags": pattern}]
    if country:
        query["country"] = country.strip().upper()
    if type:
        query["place_type"] = type.strip().lower()

    places: list[Place] = []
    async for doc in db["places"].find(query).sort("priority_score", -1):
        try:
            places.append(_doc_to_place(doc))
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping malformed place doc: %s", exc)

    if lat is not None:
        nearby = []
        for place in places:
            distance = haversine_km(lat, lon, place.latitude, place.longitude)
            if distance <= radius:
                nearby.append(place.model_copy(update={"distance_km": round(distance, 1)}))
        places = sorted(nearby, key=lambda p: p.distance_km)

    total = len(places)
    page = places[offset:offset + limit]
    return PlaceSearchResponse(
        places=page,
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(page) < total,
    )


async def _related_places(db, place: Place) -> list[Place]:
    alternatives: list[dict] = [{"country": place.country}]
    if place.tags:
        alternatives.append({"tags": {"$in": place.tags}})
    query = {"place_id": {"$ne": place.place_id}, "$or": alternatives}

    related: list[Place] = []
    async for doc in db["places"].find(query).sort("priority_score", -1).limit(_RELATED_LIMIT):
        try:
            related.append(_doc_to_place(doc))
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping malformed place doc: %s", exc)
    return related


async def _nearby_stations(db, lat: float, lng: float) -> list[NearbyStation]:
    # bounding box first, exact great-circle distance after
    lat_range = _NEARBY_RADIUS_KM / _KM_PER_DEGREE
    lng_range = _NEARBY_RADIUS_KM / (_KM_PER_DEGREE * max(math.cos(math.radians(lat)), 0.01))
    query = {
        "lat": {"$gte": lat - lat_range, "$lte": lat + lat_range},
        "lng": {"$gte": lng - lng_range, "$lte": lng + lng_range},
    }

    stations: list[NearbyStation] = []
    async for doc in db["stations"].find(query):
        if doc.get("lat") is None or doc.get("lng") is None:
            continue
        distance = haversine_km(lat, lng, doc["lat"], doc["lng"])
        if distance > _NEARBY_RADIUS_KM:
            continue
        stations.append(NearbyStation(
            station_id=doc.get("station_id"),
            name=doc["name"],
            city=doc.get("city", ""),
            country=doc.get("country", ""),
            lat=doc["lat"],
            lng=doc["lng"],
            distance_km=round(distance, 1),
        ))
    stations.sort(key=lambda s: s.distance_km)
    return stations[:_NEARBY_LIMIT]


@router.get("/{place_id}", response_model=PlaceDetailResponse)
async def place_detail(
    place_id: str,
    include_related:  bool = Query(default=True),
    include_stations: bool = Query(default=True),
    db=Depends(get_db),
):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    doc = await db["places"].find_one({"place_id": place_id})
    if doc is None:
        raise HTTPException(status_code=404, detail="Place not found")

    place = _doc_to_place(doc)
    detail = PlaceDetail(**place.model_dump())
    if include_related:
        detail.related_places = await _related_places(db, place)
    if include_stations:
        detail.nearby_stations = await _nearby_stations(db, place.latitude, place.longitude)

    return PlaceDetailResponse(
        place=detail,
        includes={"related_places": include_related, "nearby_stations": include_stations},
    )
