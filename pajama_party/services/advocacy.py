"""
advocacy.py — Route and station advocacy statistics.

Turns raw dream documents into the numbers campaigners quote: how many
people want a route, how far it is, how much CO₂ a night train would save
compared with flying, and a ready-made share text.

Emission factors are per passenger-km and deliberately simple:
  flight      0.158 kg
  night train 0.026 kg
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from pajama_party.models.analytics import RouteAdvocacy, StationAdvocacy
from pajama_party.services.geo import haversine_km
from pajama_party.services.readiness import readiness_level

_FLIGHT_KG_PER_KM = 0.158
_TRAIN_KG_PER_KM = 0.026
_NIGHT_TRAIN_KMH = 60.0        # average door-to-door incl. stops and shunting

ROUTE_SEPARATOR = "→"


def route_id(origin: str, destination: str) -> str:
    return f"{origin}{ROUTE_SEPARATOR}{destination}"


def split_route_id(value: str) -> tuple[str, str] | None:
    if ROUTE_SEPARATOR not in value:
        return None
    origin, destination = value.split(ROUTE_SEPARATOR, 1)
    if not origin.strip() or not destination.strip():
        return None
    return origin.strip(), destination.strip()


def co2_savings_kg(distance_km: float) -> float:
    return round(distance_km * (_FLIGHT_KG_PER_KM - _TRAIN_KG_PER_KM), 1)


def travel_time(distance_km: float) -> str:
    minutes = round(distance_km / _NIGHT_TRAIN_KMH * 60)
    return f"{minutes // 60}h {minutes % 60:02d}m"


def _route_distance(dreams: list[dict]) -> float | None:
    for doc in dreams:
        coords = [doc.get(k) for k in ("origin_lat", "origin_lng", "destination_lat", "destination_lng")]
        if all(c is not None for c in coords):
            return round(haversine_km(*coords), 1)
    return None


def route_advocacy(origin: str, destination: str, dreams: Iterable[dict]) -> RouteAdvocacy:
    """Advocacy stats for every dream on the exact (origin, destination) pair."""
    matching = [
        d for d in dreams
        if d.get("origin_station") == origin and d.get("destination_city") == destination
    ]
    distance = _route_distance(matching)
    count = len(matching)

    text = f"{count} people want a night train from {origin} to {destination}."
    if distance is not None:
        text += f" That's {co2_savings_kg(distance)} kg CO₂ saved per trip versus flying."
    text += " Add your dream! #NightTrains #PajamaParty"

    return RouteAdvocacy(
        route_id=route_id(origin, destination),
        origin_station=origin,
        destination_city=destination,
        dreamer_count=count,
        distance_km=distance,
        potential_co2_savings_kg=co2_savings_kg(distance) if distance is not None else None,
        travel_time=travel_time(distance) if distance is not None else None,
        share_text=text,
    )


def station_advocacy(station: str, dreams: Iterable[dict]) -> StationAdvocacy:
    """
    Demand around one station.

    Outbound counts dreams starting at the station; inbound counts dreams
    whose destination city appears in the station name (case-insensitive),
    so "Wien Hauptbahnhof" picks up dreams to "Wien".
    """
    dreams = list(dreams)
    outbound = [d for d in dreams if d.get("origin_station") == station]
    lowered = station.lower()
    inbound = [
        d for d in dreams
        if d.get("destination_city") and d["destination_city"].lower() in lowered
    ]
    top = [city for city, _ in Counter(d["destination_city"] for d in outbound).most_common(3)]
    level = readiness_level(len(outbound))

    return StationAdvocacy(
        station_id=station,
        outbound_demand=len(outbound),
        inbound_demand=len(inbound),
        top_destinations=top,
        readiness_level=level,
        share_text=(
            f"{len(outbound)} dreamers at {station} are ready for night trains "
            f"(readiness: {level}). Join the pajama party! #NightTrains"
        ),
    )
