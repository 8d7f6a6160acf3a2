"""
layer_manager.py — Dream / Reality dual-layer state machine.

Exactly one of the two primary groups is visible at a time:

    DREAM ◀──switch_layer()──▶ REALITY

Rules:
  - the map is never recreated; switching only flips layout visibility
  - a group's sources and layers are created the first time it is shown
    and only toggled afterwards
  - switching to the active group, or while a transition is still in
    progress, is ignored
  - is_transitioning is released transition_delay seconds after every
    switch attempt, successful or not
  - MapStatus.ERROR is terminal: every operation becomes a no-op
  - every add_source / add_layer is guarded by has_source / has_layer

Cluster clicks are expanded by the map's own clustering engine
(get_cluster_expansion_zoom → ease_to). Any other click opens a single
detail surface and closes the previous one.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from pajama_party.client.api import ApiClient, api_client
from pajama_party.client.dreams import DreamStore
from pajama_party.client.errors import ApiError, user_message
from pajama_party.core.config import settings
from pajama_party.map.features import DreamFeatureBuilder, feature_collection, place_features
from pajama_party.map.handle import ClickEvent, MapHandle, Popup
from pajama_party.map.layers import LAYERS_BY_ID, LayerGroup, layers_for, sources_for
from pajama_party.models.dream import Dream
from pajama_party.models.map import RealityMapResponse
from pajama_party.services.advocacy import route_id
from pajama_party.services.reality_network import RealityDataError, split_network

logger = logging.getLogger(__name__)

PRIMARY_GROUPS = (LayerGroup.DREAM, LayerGroup.REALITY)

# Clickable layer → kind of detail surface it opens
_DETAIL_KINDS = {
    "dream-stations-circle": "station",
    "dream-routes-line": "route",
    "dream-places-individual": "place",
    "existing-stations": "reality-station",
    "existing-night-routes": "reality-route",
    "existing-day-routes": "reality-route",
}


class MapStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class DetailSurface:
    kind: str
    properties: dict
    popup: Popup
    advocacy: Optional[dict] = None
    error: Optional[str] = None

    def close(self) -> None:
        self.popup.close()


class MapLayerManager:
    def __init__(
        self,
        handle: MapHandle,
        api: Optional[ApiClient] = None,
        *,
        initial_layer: LayerGroup = LayerGroup.DREAM,
        transition_delay: Optional[float] = None,
        reality_timeout: Optional[float] = None,
        on_layer_change: Optional[Callable[[LayerGroup], None]] = None,
    ) -> None:
        if initial_layer not in PRIMARY_GROUPS:
            raise ValueError(f"initial_layer must be one of {[g.value for g in PRIMARY_GROUPS]}")
        self.handle = handle
        self.api = api or api_client
        self.transition_delay = (
            settings.layer_transition_ms / 1000 if transition_delay is None else transition_delay
        )
        self.reality_timeout = (
            settings.reality_fetch_timeout_seconds if reality_timeout is None else reality_timeout
        )
        self.on_layer_change = on_layer_change

        self.status = MapStatus.LOADING
        self.active_layer = initial_layer
        self.is_transitioning = False
        self.error: Optional[str] = None
        self.detail: Optional[DetailSurface] = None

        self._created: set[LayerGroup] = set()
        self._builder = DreamFeatureBuilder()
        self._dream_data = {
            "dream-routes": feature_collection([]),
            "dream-stations": feature_collection([]),
        }
        self._guard_release: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._click_layers: list[str] = []

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def on_load(self) -> None:
        """Map finished loading: build the initial group and wire click handlers."""
        if self.status is not MapStatus.LOADING:
            return
        self.status = MapStatus.READY
        try:
            await self._create_group(self.active_layer, visible=True)
        except Exception as exc:
            logger.error("Initial %s layer failed: %s", self.active_layer.value, exc)
            self.error = f"Failed to load the {self.active_layer.value} layer"
        cluster_layers = {layer.id for g in PRIMARY_GROUPS for layer in layers_for(g) if layer.clusters}
        for layer_id in sorted(_DETAIL_KINDS.keys() | cluster_layers):
            self.handle.on("click", layer_id, self._on_click)
            self._click_layers.append(layer_id)

    def on_error(self, exc: BaseException) -> None:
        """Map failed to load. Terminal."""
        logger.error("Map failed to load: %s", exc)
        self.status = MapStatus.ERROR
        self.error = "The map could not be loaded. Please refresh the page."

    async def close(self) -> None:
        for layer_id in self._click_layers:
            self.handle.off("click", layer_id)
        self._click_layers = []
        if self._guard_release is not None:
            self._guard_release.cancel()
            self._guard_release = None
        self.is_transitioning = False
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.close_detail()

    # ── Layer switching ───────────────────────────────────────────────────────

    async def switch_layer(self, target: LayerGroup) -> bool:
        """Show `target`, hide the other primary group. Returns True if a switch happened."""
        if self.status is not MapStatus.READY:
            return False
        if target not in PRIMARY_GROUPS:
            logger.warning("Ignoring switch to non-primary group %s", target)
            return False
        if target == self.active_layer or self.is_transitioning:
            return False

        self.is_transitioning = True
        try:
            await self._create_group(target, visible=False)
            for group in PRIMARY_GROUPS:
                visible = group == target
                for layer in layers_for(group):
                    if self.handle.has_layer(layer.id):
                        self.handle.set_visibility(layer.id, visible)
            self.active_layer = target
            self.close_detail()
            self.error = None
        except Exception as exc:
            logger.error("Switching to %s failed: %s", target.value, exc)
            self.error = f"Could not show the {target.value} layer"
            return False
        finally:
            self._schedule_guard_release()

        logger.info("Map layer switched to %s", target.value)
        if self.on_layer_change is not None:
            self.on_layer_change(target)
        return True

    async def toggle(self) -> bool:
        other = LayerGroup.REALITY if self.active_layer is LayerGroup.DREAM else LayerGroup.DREAM
        return await self.switch_layer(other)

    def _schedule_guard_release(self) -> None:
        if self._guard_release is not None:
            self._guard_release.cancel()
        loop = asyncio.get_running_loop()
        self._guard_release = loop.call_later(self.transition_delay, self._release_guard)

    def _release_guard(self) -> None:
        self.is_transitioning = False
        self._guard_release = None

    # ── Sources & layers ──────────────────────────────────────────────────────

    async def _create_group(self, group: LayerGroup, visible: bool) -> None:
        if group in self._created:
            return
        data = await self._group_data(group)
        for source in sources_for(group):
            if not self.handle.has_source(source.id):
                self.handle.add_source(source.id, source.to_mapbox(data.get(source.id, feature_collection([]))))
        for layer in layers_for(group):
            if not self.handle.has_layer(layer.id):
                self.handle.add_layer(layer.to_mapbox(visible=visible))
        self._created.add(group)

    async def _group_data(self, group: LayerGroup) -> dict:
        if group is LayerGroup.DREAM:
            return {"dream-places": await self._places_data(), **self._dream_data}
        if group is LayerGroup.REALITY:
            return await self._reality_data()
        return {}

    async def _places_data(self) -> dict:
        try:
            places = await self.api.search_places(limit=1000)
        except ApiError as exc:
            logger.warning("Places unavailable, dream layer shown without them: %s", exc.message)
            return feature_collection([])
        return place_features(places)

    async def _reality_data(self) -> dict:
        try:
            payload = await asyncio.wait_for(self.api.get_reality_map(), timeout=self.reality_timeout)
        except (ApiError, asyncio.TimeoutError, PydanticValidationError) as exc:
            logger.warning("Reality API unavailable (%s), using the static network file", exc)
            payload = await self._static_reality()
        return {
            "reality-stations": feature_collection([f.model_dump() for f in payload.stations]),
            "reality-routes": feature_collection([f.model_dump() for f in payload.routes]),
        }

    async def _static_reality(self) -> RealityMapResponse:
        """GET /reality-network.geojson, split into stations and routes. Errors propagate to the switch."""
        collection = await asyncio.wait_for(self.api.get_static_reality(), timeout=self.reality_timeout)
        if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
            raise RealityDataError("Static reality network is not a GeoJSON FeatureCollection")
        return split_network(collection, datetime.now(timezone.utc))

    # ── Dream data ────────────────────────────────────────────────────────────

    def update_dreams(self, dreams: list[Dream]) -> None:
        """Push the current dream list to the dream-routes / dream-stations sources."""
        routes, stations = self._builder.build(dreams)
        self._dream_data = {"dream-routes": routes, "dream-stations": stations}
        if self.status is not MapStatus.READY:
            return
        for source_id, data in self._dream_data.items():
            if self.handle.has_source(source_id):
                self.handle.set_source_data(source_id, data)

    def bind_store(self, store: DreamStore) -> Callable[[], None]:
        """Keep the Dream layer in sync with `store`. Returns an unsubscribe function."""
        self.update_dreams(store.dreams)
        return store.subscribe(self.update_dreams)

    # ── Clicks & detail surfaces ──────────────────────────────────────────────

    def _on_click(self, event: ClickEvent) -> None:
        task = asyncio.get_running_loop().create_task(self.handle_click(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_click(self, event: ClickEvent) -> Optional[DetailSurface]:
        if self.status is not MapStatus.READY:
            return None
        spec = LAYERS_BY_ID.get(event.layer_id)
        if spec is None:
            return None

        if spec.clusters:
            await self._expand_cluster(spec.source, event)
            return None

        kind = _DETAIL_KINDS.get(event.layer_id)
        if kind is None:
            return None
        self.close_detail()
        popup = self.handle.open_popup(event.coordinates, {"kind": kind, **event.properties})
        surface = DetailSurface(kind=kind, properties=dict(event.properties), popup=popup)
        self.detail = surface
        await self._load_advocacy(surface)
        return surface

    async def _expand_cluster(self, source_id: str, event: ClickEvent) -> None:
        cluster_id = event.properties.get("cluster_id")
        if cluster_id is None or event.coordinates is None:
            return
        try:
            zoom = await self.handle.get_cluster_expansion_zoom(source_id, cluster_id)
        except Exception as exc:
            logger.warning("Cluster %s expansion failed: %s", cluster_id, exc)
            return
        self.handle.ease_to(event.coordinates, zoom)

    async def _load_advocacy(self, surface: DetailSurface) -> None:
        props = surface.properties
        try:
            if surface.kind == "station" and props.get("station"):
                surface.advocacy = await self.api.get_advocacy(station_id=props["station"])
            elif surface.kind == "route" and props.get("origin") and props.get("destination"):
                surface.advocacy = await self.api.get_advocacy(
                    route_id=route_id(props["origin"], props["destination"])
                )
        except ApiError as exc:
            surface.error = user_message(exc)

    def close_detail(self) -> None:
        if self.detail is not None:
            self.detail.close()
            self.detail = None
