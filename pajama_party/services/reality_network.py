"""
reality_network.py — The existing European night-train network (Reality layer data).

The network ships as a static GeoJSON FeatureCollection
(pajama_party/data/reality-network.geojson): Point features are stations,
LineString features are routes. load_reality_network() splits it into the
{stations, routes, lastUpdated} payload the map expects and keeps it in
memory for reality_cache_seconds.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pajama_party.models.map import Feature, RealityMapResponse

logger = logging.getLogger(__name__)


class RealityDataError(Exception):
    """The static network file is missing or malformed."""


def read_network_file(path: str | Path) -> dict:
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise RealityDataError(f"Cannot read reality network from {path}: {exc}") from exc
    if data.get("type") != "FeatureCollection":
        raise RealityDataError(f"{path} is not a GeoJSON FeatureCollection")
    return data


def split_network(collection: dict, now: datetime) -> RealityMapResponse:
    """Point features → stations, LineString features → routes."""
    stations: list[Feature] = []
    routes: list[Feature] = []
    for raw in collection.get("features", []):
        geometry = raw.get("geometry") or {}
        kind = geometry.get("type")
        if kind == "Point":
            stations.append(Feature(geometry=geometry, properties=raw.get("properties", {})))
        elif kind == "LineString" and len(geometry.get("coordinates", [])) >= 2:
            props = {"service_type": "night_train", **raw.get("properties", {})}
            routes.append(Feature(geometry=geometry, properties=props))
    return RealityMapResponse(stations=stations, routes=routes, last_updated=now)


class RealityNetworkCache:
    def __init__(self, path: str | Path, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[RealityMapResponse] = None
        self._loaded_at = 0.0

    def get(self) -> RealityMapResponse:
        if self._value is not None and self._clock() - self._loaded_at < self.ttl_seconds:
            return self._value
        collection = read_network_file(self.path)
        self._value = split_network(collection, datetime.now(timezone.utc))
        self._loaded_at = self._clock()
        logger.info(
            "Loaded reality network: %d stations, %d routes",
            len(self._value.stations), len(self._value.routes),
        )
        return self._value

    def clear(self) -> None:
        self._value = None
