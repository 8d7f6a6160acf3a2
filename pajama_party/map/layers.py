"""
layers.py — Typed registry of every map source and layer.

All layer and source IDs used anywhere in the platform come from here;
nothing else spells them out. Groups:

  DREAM          places, dream routes and clustered dream stations
  REALITY        existing night/day routes and stations
  HEATMAP        route-demand heat overlay
  CRITICAL_MASS  station readiness overlay

to_mapbox() renders the Mapbox-GL style JSON each spec corresponds to,
which is also what GET /api/map/layers serves.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class LayerGroup(str, Enum):
    DREAM = "dream"
    REALITY = "reality"
    HEATMAP = "heatmap"
    CRITICAL_MASS = "critical_mass"


@dataclass(frozen=True)
class SourceSpec:
    id: str
    cluster: bool = False
    cluster_max_zoom: Optional[int] = None
    cluster_radius: Optional[int] = None

    def to_mapbox(self, data: Any) -> dict:
        spec: dict[str, Any] = {"type": "geojson", "data": data}
        if self.cluster:
            spec.update(cluster=True, clusterMaxZoom=self.cluster_max_zoom, clusterRadius=self.cluster_radius)
        return spec


@dataclass(frozen=True)
class LayerSpec:
    id: str
    group: LayerGroup
    source: str
    type: str                              # circle | line | symbol | heatmap
    paint: dict = field(default_factory=dict)
    layout: dict = field(default_factory=dict)
    filter: Optional[list] = None
    minzoom: Optional[float] = None
    clusters: bool = False                 # clicking expands a cluster

    def to_mapbox(self, visible: bool = True) -> dict:
        spec: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "paint": dict(self.paint),
            "layout": {**self.layout, "visibility": "visible" if visible else "none"},
        }
        if self.filter is not None:
            spec["filter"] = self.filter
        if self.minzoom is not None:
            spec["minzoom"] = self.minzoom
        return spec


_CLUSTERED = ["has", "point_count"]
_UNCLUSTERED = ["!", ["has", "point_count"]]

# ── Sources ───────────────────────────────────────────────────────────────────

SOURCES: dict[str, SourceSpec] = {
    s.id: s
    for s in (
        SourceSpec("dream-places", cluster=True, cluster_max_zoom=14, cluster_radius=60),
        SourceSpec("dream-routes"),
        SourceSpec("dream-stations", cluster=True, cluster_max_zoom=14, cluster_radius=50),
        SourceSpec("reality-stations"),
        SourceSpec("reality-routes"),
        SourceSpec("route-heat"),
        SourceSpec("critical-mass-stations"),
    )
}

# ── Layers (draw order within each group) ─────────────────────────────────────

_DREAM = (
    LayerSpec(
        "dream-places-clusters", LayerGroup.DREAM, "dream-places", "circle",
        paint={
            "circle-color": ["step", ["get", "point_count"], "#fbbf24", 10, "#f59e0b", 50, "#d97706"],
            "circle-radius": ["step", ["get", "point_count"], 18, 10, 24, 50, 32],
            "circle-opacity": 0.85,
        },
        filter=_CLUSTERED, clusters=True,
    ),
    LayerSpec(
        "dream-places-individual", LayerGroup.DREAM, "dream-places", "circle",
        paint={"circle-color": "#fbbf24", "circle-radius": 6, "circle-stroke-width": 1, "circle-stroke-color": "#ffffff"},
        filter=_UNCLUSTERED,
    ),
    LayerSpec(
        "dream-routes-shadow", LayerGroup.DREAM, "dream-routes", "line",
        paint={"line-color": "#1e1b4b", "line-width": 6, "line-opacity": 0.25, "line-blur": 2},
        layout={"line-cap": "round", "line-join": "round"},
    ),
    LayerSpec(
        "dream-routes-line", LayerGroup.DREAM, "dream-routes", "line",
        paint={"line-color": "#a855f7", "line-width": 2.5, "line-opacity": 0.8, "line-dasharray": [2, 1]},
        layout={"line-cap": "round", "line-join": "round"},
    ),
    LayerSpec(
        "dream-stations-clusters", LayerGroup.DREAM, "dream-stations", "circle",
        paint={
            "circle-color": ["step", ["get", "point_count"], "#c084fc", 5, "#a855f7", 20, "#7e22ce"],
            "circle-radius": ["step", ["get", "point_count"], 16, 5, 22, 20, 30],
        },
        filter=_CLUSTERED, clusters=True,
    ),
    LayerSpec(
        "dream-stations-cluster-count", LayerGroup.DREAM, "dream-stations", "symbol",
        paint={"text-color": "#ffffff"},
        layout={"text-field": "{point_count_abbreviated}", "text-size": 12},
        filter=_CLUSTERED,
    ),
    LayerSpec(
        "dream-stations-circle", LayerGroup.DREAM, "dream-stations", "circle",
        paint={"circle-color": "#a855f7", "circle-radius": 7, "circle-stroke-width": 2, "circle-stroke-color": "#ffffff"},
        filter=_UNCLUSTERED,
    ),
    LayerSpec(
        "dream-stations-labels", LayerGroup.DREAM, "dream-stations", "symbol",
        paint={"text-color": "#3b0764", "text-halo-color": "#ffffff", "text-halo-width": 1},
        layout={"text-field": ["get", "station"], "text-size": 11, "text-offset": [0, 1.4]},
        filter=_UNCLUSTERED, minzoom=8,
    ),
)

_REALITY = (
    LayerSpec(
        "existing-night-routes", LayerGroup.REALITY, "reality-routes", "line",
        paint={"line-color": "#1d4ed8", "line-width": 3, "line-opacity": 0.9},
        layout={"line-cap": "round", "line-join": "round"},
        filter=["==", ["get", "service_type"], "night_train"],
    ),
    LayerSpec(
        "existing-day-routes", LayerGroup.REALITY, "reality-routes", "line",
        paint={"line-color": "#64748b", "line-width": 2, "line-opacity": 0.6, "line-dasharray": [1, 1]},
        filter=["==", ["get", "service_type"], "day_train"],
    ),
    LayerSpec(
        "existing-stations", LayerGroup.REALITY, "reality-stations", "circle",
        paint={
            "circle-color": ["case", ["get", "has_night_train"], "#1d4ed8", "#94a3b8"],
            "circle-radius": ["case", ["get", "is_major_hub"], 8, 5],
            "circle-stroke-width": 1.5,
            "circle-stroke-color": "#ffffff",
        },
    ),
)

_HEATMAP = (
    LayerSpec(
        "route-heatmap", LayerGroup.HEATMAP, "route-heat", "heatmap",
        paint={
            "heatmap-weight": ["get", "intensity"],
            "heatmap-intensity": ["interpolate", ["linear"], ["zoom"], 0, 1, 9, 3],
            "heatmap-radius": ["interpolate", ["linear"], ["zoom"], 0, 4, 9, 30],
            "heatmap-opacity": 0.75,
            "heatmap-color": [
                "interpolate", ["linear"], ["heatmap-density"],
                0, "rgba(0,0,0,0)", 0.2, "#fde68a", 0.5, "#f59e0b", 0.8, "#ef4444", 1, "#7f1d1d",
            ],
        },
    ),
    LayerSpec(
        "route-demand-circles", LayerGroup.HEATMAP, "route-heat", "circle",
        paint={"circle-color": "#f59e0b", "circle-radius": ["*", 12, ["get", "intensity"]], "circle-opacity": 0.7},
        filter=["==", ["get", "is_station"], True], minzoom=12,
    ),
    LayerSpec(
        "route-demand-pulse", LayerGroup.HEATMAP, "route-heat", "circle",
        paint={
            "circle-color": "#ef4444",
            "circle-radius": 18,
            "circle-opacity": 0.6,
            "circle-stroke-width": 2,
            "circle-stroke-color": "#ef4444",
            "circle-stroke-opacity": 1,
        },
        filter=["all", ["==", ["get", "is_station"], True], [">=", ["get", "demand"], 5]],
    ),
)

_CRITICAL_MASS = (
    LayerSpec(
        "critical-mass-heat", LayerGroup.CRITICAL_MASS, "critical-mass-stations", "heatmap",
        paint={
            "heatmap-weight": ["interpolate", ["linear"], ["get", "dreamCount"], 0, 0, 100, 1],
            "heatmap-radius": 40,
            "heatmap-opacity": 0.6,
        },
    ),
    LayerSpec(
        "critical-mass-circles", LayerGroup.CRITICAL_MASS, "critical-mass-stations", "circle",
        paint={
            "circle-color": [
                "match", ["get", "readinessLevel"],
                "critical", "#dc2626", "high", "#f97316", "medium", "#facc15", "#22c55e",
            ],
            "circle-radius": ["interpolate", ["linear"], ["get", "readinessScore"], 0, 6, 100, 20],
            "circle-stroke-width": 2,
            "circle-stroke-color": "#ffffff",
        },
    ),
)

LAYERS: dict[LayerGroup, tuple[LayerSpec, ...]] = {
    LayerGroup.DREAM: _DREAM,
    LayerGroup.REALITY: _REALITY,
    LayerGroup.HEATMAP: _HEATMAP,
    LayerGroup.CRITICAL_MASS: _CRITICAL_MASS,
}

LAYERS_BY_ID: dict[str, LayerSpec] = {layer.id: layer for group in LAYERS.values() for layer in group}


def layers_for(group: LayerGroup) -> tuple[LayerSpec, ...]:
    return LAYERS[group]


def layer_ids(group: LayerGroup) -> list[str]:
    return [layer.id for layer in LAYERS[group]]


def sources_for(group: LayerGroup) -> list[SourceSpec]:
    """Sources used by a group, in first-use order."""
    seen: dict[str, SourceSpec] = {}
    for layer in LAYERS[group]:
        seen.setdefault(layer.source, SOURCES[layer.source])
    return list(seen.values())
