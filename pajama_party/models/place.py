"""
place.py — Curated destination places shown on the Dream layer.
"""

from typing import Optional

from pydantic import BaseModel


class Place(BaseModel):
    place_id: str
    name: str
    brief_description: str = ""
    country: str = ""
    latitude: float
    longitude: float
    place_type: str = "city"       # city | nature | heritage | coast | mountain
    priority_score: int = 0
    tags: list[str] = []
    image_url: Optional[str] = None
    distance_km: Optional[float] = None   # only set for proximity searches


class PlaceSearchResponse(BaseModel):
    places: list[Place]
    total: int
    limit: int
    offset: int
    has_more: bool


class NearbyStation(BaseModel):
    station_id: Optional[str] = None
    name: str
    city: str = ""
    country: str = ""
    lat: float
    lng: float
    distance_km: float


class PlaceDetail(Place):
    related_places: Optional[list[Place]] = None     # same country or a shared tag
    nearby_stations: Optional[list[NearbyStation]] = None


class PlaceDetailResponse(BaseModel):
    place: PlaceDetail
    includes: dict[str, bool]
