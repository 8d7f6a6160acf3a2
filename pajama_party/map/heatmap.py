"""
heatmap.py — Route-demand heat-map overlay.

Each route with demand contributes:
  - points sampled along the line (max(5, demand // 2) steps), weighted
    highest mid-route: weight = 1 - |ratio - 0.5| * 0.4
  - its two endpoints at intensity × 1.2, flagged is_station

    intensity = min(demand / 10, 1) × 0.7 + min(popularity / 100, 1) × 0.3

scaled by the overlay's intensity multiplier and clamped to [0, 1].
The endpoint boost is applied after clamping so busy stations stand out.

HeatMapOverlay recomputes only when the route set changes; showing or
hiding it flips visibility and starts/stops the pulse animation on
high-demand stations.
"""

import asyncio
import logging
import math
import time
from typing import Callable, Iterable, Optional

from pajama_party.map.features import feature_collection, route_demand
from pajama_party.map.handle import MapHandle
from pajama_party.map.layers import SOURCES, LayerGroup, layers_for
from pajama_party.models.dream import Dream
from pajama_party.models.map import RouteDemand
from pajama_party.services.geo import interpolate

logger = logging.getLogger(__name__)

SOURCE_ID = "route-heat"
PULSE_LAYER = "route-demand-pulse"

_DEMAND_SATURATION = 10.0
_DEMAND_WEIGHT = 0.7
_POPULARITY_WEIGHT = 0.3
_MIN_STEPS = 5
_MID_ROUTE_FALLOFF = 0.4
_STATION_BOOST = 1.2
PULSE_MIN_DEMAND = 5
_PULSE_SPEED = 0.003          # radians per millisecond


def route_intensity(demand: int, popularity: float, scale: float = 1.0) -> float:
    raw = min(demand / _DEMAND_SATURATION, 1.0) * _DEMAND_WEIGHT + min(popularity / 100, 1.0) * _POPULARITY_WEIGHT
    return max(0.0, min(1.0, raw * scale))


def _heat_point(coordinates, intensity: float, route: RouteDemand, is_station: bool) -> dict:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": list(coordinates)},
        "properties": {
            "intensity": intensity,
            "demand": route.demand_count,
            "route_id": route.id,
            "is_station": is_station,
        },
    }


def generate_heat_points(routes: Iterable[RouteDemand], scale: float = 1.0) -> dict:
    features = []
    for route in routes:
        if route.demand_count <= 0:
            continue
        intensity = route_intensity(route.demand_count, route.popularity, scale)
        steps = max(_MIN_STEPS, route.demand_count // 2)
        start, end = route.origin.coordinates, route.destination.coordinates
        for i in range(steps + 1):
            ratio = i / steps
            weight = 1 - abs(ratio - 0.5) * _MID_ROUTE_FALLOFF
            features.append(_heat_point(interpolate(start, end, ratio), intensity * weight, route, False))
        features.append(_heat_point(start, intensity * _STATION_BOOST, route, True))
        features.append(_heat_point(end, intensity * _STATION_BOOST, route, True))
    return feature_collection(features)


def pulse_opacity(now_ms: float) -> float:
    """0.2 … 1.0, one full cycle roughly every second."""
    return abs(math.sin(now_ms * _PULSE_SPEED)) * 0.8 + 0.2


class HeatMapOverlay:
    def __init__(
        self,
        handle: MapHandle,
        *,
        scale: float = 1.0,
        pulse_interval: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.handle = handle
        self.scale = scale
        self.pulse_interval = pulse_interval
        self._clock = clock

        self.visible = False
        self.computations = 0
        self._fingerprint: Optional[tuple] = None
        self._data = feature_collection([])
        self._pulse: Optional[asyncio.Task] = None

    @property
    def data(self) -> dict:
        return self._data

    @property
    def has_pulsing_stations(self) -> bool:
        return any(
            f["properties"]["is_station"] and f["properties"]["demand"] >= PULSE_MIN_DEMAND
            for f in self._data["features"]
        )

    def update(self, routes: list[RouteDemand]) -> bool:
        """Recompute and push if the route set changed. Returns True when recomputed."""
        fingerprint = tuple((r.id, r.demand_count, round(r.popularity, 6)) for r in routes)
        if fingerprint == self._fingerprint:
            return False
        self._fingerprint = fingerprint
        self._data = generate_heat_points(routes, self.scale)
        self.computations += 1
        if self.handle.has_source(SOURCE_ID):
            self.handle.set_source_data(SOURCE_ID, self._data)
        if self.visible:
            self._sync_pulse()
        return True

    def update_from_dreams(self, dreams: list[Dream]) -> bool:
        return self.update(route_demand(dreams))

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        if visible:
            self._ensure_layers()
        for layer in layers_for(LayerGroup.HEATMAP):
            if self.handle.has_layer(layer.id):
                self.handle.set_visibility(layer.id, visible)
        self._sync_pulse()

    def _ensure_layers(self) -> None:
        if not self.handle.has_source(SOURCE_ID):
            self.handle.add_source(SOURCE_ID, SOURCES[SOURCE_ID].to_mapbox(self._data))
        for layer in layers_for(LayerGroup.HEATMAP):
            if not self.handle.has_layer(layer.id):
                self.handle.add_layer(layer.to_mapbox(visible=self.visible))

    # ── Pulse animation ───────────────────────────────────────────────────────

    def _sync_pulse(self) -> None:
        wanted = self.visible and self.has_pulsing_stations
        running = self._pulse is not None and not self._pulse.done()
        if wanted and not running:
            self._pulse = asyncio.get_running_loop().create_task(self._animate())
        elif not wanted and running:
            self._pulse.cancel()
            self._pulse = None

    async def _animate(self) -> None:
        while True:
            if self.handle.has_layer(PULSE_LAYER):
                p = pulse_opacity(self._clock() * 1000)
                self.handle.set_paint_property(PULSE_LAYER, "circle-opacity", p * 0.6)
                self.handle.set_paint_property(PULSE_LAYER, "circle-stroke-opacity", p)
            await asyncio.sleep(self.pulse_interval)

    @property
    def is_animating(self) -> bool:
        return self._pulse is not None and not self._pulse.done()

    async def close(self) -> None:
        task, self._pulse = self._pulse, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
