"""
features.py — Dreams → DreamRoute → GeoJSON.

Projection rules:
  - a dream becomes a DreamRoute only when both ends have coordinates
  - every dream with origin coordinates becomes exactly one Point in the
    dream-stations source (clustering merges points, never dreams)
  - coordinates are passed through untouched, [lng, lat]

DreamFeatureBuilder memoises the last projection: dreams are immutable,
so the same set of ids always produces the same features.
"""

from collections import defaultdict
from typing import Iterable, Optional

from pajama_party.client.dreams import TEMP_PREFIX
from pajama_party.models.dream import Dream
from pajama_party.models.map import DreamRoute, RouteDemand, RouteEndpoint
from pajama_party.models.place import Place
from pajama_party.services.advocacy import route_id


def feature_collection(features: list[dict]) -> dict:
    return {"type": "FeatureCollection", "features": features}


def _point(coordinates, properties: dict) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": list(coordinates)},
        "properties": properties,
    }


def dream_route(dream: Dream) -> Optional[DreamRoute]:
    origin = dream.origin_coordinates
    destination = dream.destination_coordinates
    if origin is None or destination is None:
        return None
    return DreamRoute(
        id=dream.id,
        origin=RouteEndpoint(name=dream.origin_station, coordinates=origin),
        destination=RouteEndpoint(name=dream.destination_city, coordinates=destination),
        dreamer_name=dream.dreamer_name,
    )


def dream_routes(dreams: Iterable[Dream]) -> list[DreamRoute]:
    return [route for route in map(dream_route, dreams) if route is not None]


def route_features(routes: Iterable[DreamRoute]) -> dict:
    return feature_collection([
        {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [list(r.origin.coordinates), list(r.destination.coordinates)],
            },
            "properties": {
                "id": r.id,
                "origin": r.origin.name,
                "destination": r.destination.name,
                "dreamer_name": r.dreamer_name,
                "count": r.count,
            },
        }
        for r in routes
    ])


def station_features(dreams: Iterable[Dream]) -> dict:
    return feature_collection([
        _point(d.origin_coordinates, {
            "id": d.id,
            "station": d.origin_station,
            "dreamer_name": d.dreamer_name,
            "destination": d.destination_city,
            "pending": d.id.startswith(TEMP_PREFIX),
        })
        for d in dreams
        if d.origin_coordinates is not None
    ])


def place_features(places: Iterable[Place]) -> dict:
    return feature_collection([
        _point((p.longitude, p.latitude), {
            "place_id": p.place_id,
            "name": p.name,
            "country": p.country,
            "place_type": p.place_type,
            "priority_score": p.priority_score,
            "tags": p.tags,
        })
        for p in places
    ])


def route_demand(dreams: Iterable[Dream]) -> list[RouteDemand]:
    """
    Group routable dreams by exact (origin_station, destination_city).

    popularity is 100 × demand / busiest route's demand.
    """
    grouped: dict[tuple[str, str], list[DreamRoute]] = defaultdict(list)
    for route in dream_routes(dreams):
        grouped[(route.origin.name, route.destination.name)].append(route)
    if not grouped:
        return []

    busiest = max(len(routes) for routes in grouped.values())
    demand = []
    for (origin, destination), routes in grouped.items():
        first = routes[0]
        demand.append(RouteDemand(
            id=route_id(origin, destination),
            origin=first.origin,
            destination=first.destination,
            demand_count=len(routes),
            popularity=100 * len(routes) / busiest,
        ))
    demand.sort(key=lambda r: (-r.demand_count, r.id))
    return demand


class DreamFeatureBuilder:
    """Memoised dream → (routes, stations) feature collections."""

    def __init__(self) -> None:
        self._key: Optional[tuple[str, ...]] = None
        self._routes: dict = feature_collection([])
        self._stations: dict = feature_collection([])
        self.builds = 0

    def build(self, dreams: list[Dream]) -> tuple[dict, dict]:
        key = tuple(d.id for d in dreams)
        if key != self._key:
            self._routes = route_features(dream_routes(dreams))
            self._stations = station_features(dreams)
            self._key = key
            self.builds += 1
        return self._routes, self._stations
