"""
map.py — GeoJSON payloads served to map front ends.

Coordinates are always [lng, lat] (GeoJSON order).
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Feature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: dict[str, Any]
    properties: dict[str, Any] = {}


class FeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[Feature] = []


class RouteEndpoint(BaseModel):
    name: str
    coordinates: tuple[float, float]   # [lng, lat]


class DreamRoute(BaseModel):
    """One dream drawn as a line on the Dream layer (count is always 1)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    origin: RouteEndpoint = Field(alias="from")
    destination: RouteEndpoint = Field(alias="to")
    dreamer_name: str = Field(alias="dreamerName")
    count: int = 1


class RouteDemand(BaseModel):
    """All dreams on one (origin, destination) pair, input to the heat-map overlay."""

    id: str
    origin: RouteEndpoint
    destination: RouteEndpoint
    demand_count: int
    popularity: float        # 0–100, relative to the busiest route


class RealityMapResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stations: list[Feature]
    routes: list[Feature]
    last_updated: datetime = Field(alias="lastUpdated")


class LayerInfo(BaseModel):
    id: str
    group: str          # dream | reality | heatmap | critical_mass
    source: str
    type: str           # circle | line | symbol | heatmap
    minzoom: float | None = None


class SourceInfo(BaseModel):
    id: str
    cluster: bool = False
    cluster_max_zoom: int | None = None
    cluster_radius: int | None = None


class LayerRegistryResponse(BaseModel):
    layers: list[LayerInfo]
    sources: list[SourceInfo]


class DreamFeaturesResponse(BaseModel):
    routes: FeatureCollection
    stations: FeatureCollection
    heat: FeatureCollection
