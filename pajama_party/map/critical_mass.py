"""
critical_mass.py — Station readiness overlay.

Shows which origin stations are close to a pajama party: a heat layer
weighted by dreamCount (saturating at 100) and circles coloured by
readiness level (see services/readiness.py for the thresholds).
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from pajama_party.map.features import feature_collection
from pajama_party.map.handle import MapHandle
from pajama_party.map.layers import SOURCES, LayerGroup, layers_for
from pajama_party.models.dream import Dream
from pajama_party.models.station import StationReadiness
from pajama_party.services.readiness import aggregate_readiness

logger = logging.getLogger(__name__)

SOURCE_ID = "critical-mass-stations"


def readiness_features(stations: Iterable[StationReadiness]) -> dict:
    """Stations without coordinates cannot be drawn and are skipped."""
    return feature_collection([
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": list(s.coordinates)},
            "properties": s.model_dump(by_alias=True, exclude={"coordinates"}),
        }
        for s in stations
        if s.coordinates
    ])


class CriticalMassOverlay:
    def __init__(self, handle: MapHandle) -> None:
        self.handle = handle
        self.visible = False
        self.stations: list[StationReadiness] = []
        self._fingerprint: Optional[tuple] = None
        self._data = feature_collection([])

    @property
    def data(self) -> dict:
        return self._data

    def update(self, stations: list[StationReadiness]) -> bool:
        fingerprint = tuple((s.station, s.dream_count, s.recent_dreams) for s in stations)
        if fingerprint == self._fingerprint:
            return False
        self._fingerprint = fingerprint
        self.stations = stations
        self._data = readiness_features(stations)
        if self.handle.has_source(SOURCE_ID):
            self.handle.set_source_data(SOURCE_ID, self._data)
        return True

    def update_from_dreams(self, dreams: list[Dream], now: Optional[datetime] = None) -> bool:
        docs = [d.model_dump() for d in dreams]
        stations, _ = aggregate_readiness(docs, now or datetime.now(timezone.utc))
        return self.update(stations)

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        if visible:
            if not self.handle.has_source(SOURCE_ID):
                self.handle.add_source(SOURCE_ID, SOURCES[SOURCE_ID].to_mapbox(self._data))
            for layer in layers_for(LayerGroup.CRITICAL_MASS):
                if not self.handle.has_layer(layer.id):
                    self.handle.add_layer(layer.to_mapbox(visible=True))
        for layer in layers_for(LayerGroup.CRITICAL_MASS):
            if self.handle.has_layer(layer.id):
                self.handle.set_visibility(layer.id, visible)
