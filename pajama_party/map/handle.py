"""
handle.py — The map rendering surface, as seen by the layer manager.

MapHandle is the adapter between platform logic and whatever actually
draws the map (a Mapbox GL bridge, a static renderer, or the recording
fake in the tests). Implementations must be usable from the asyncio
event loop thread; only capture_image() may block, and callers run it
in a worker thread.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class ClickEvent:
    layer_id: str
    properties: dict = field(default_factory=dict)
    coordinates: Optional[tuple[float, float]] = None     # [lng, lat] of the clicked feature


class Popup(ABC):
    """A detail surface opened on the map (popup, side panel, ...)."""

    @abstractmethod
    def close(self) -> None: ...


class MapHandle(ABC):
    # ── Sources ───────────────────────────────────────────────────────────────
    @abstractmethod
    def has_source(self, source_id: str) -> bool: ...

    @abstractmethod
    def add_source(self, source_id: str, spec: dict) -> None: ...

    @abstractmethod
    def set_source_data(self, source_id: str, data: dict) -> None: ...

    # ── Layers ────────────────────────────────────────────────────────────────
    @abstractmethod
    def has_layer(self, layer_id: str) -> bool: ...

    @abstractmethod
    def add_layer(self, spec: dict) -> None: ...

    @abstractmethod
    def set_visibility(self, layer_id: str, visible: bool) -> None: ...

    @abstractmethod
    def set_paint_property(self, layer_id: str, name: str, value: Any) -> None: ...

    # ── Events ────────────────────────────────────────────────────────────────
    @abstractmethod
    def on(self, event: str, layer_id: str, handler: Callable[[ClickEvent], Any]) -> None: ...

    @abstractmethod
    def off(self, event: str, layer_id: str) -> None: ...

    # ── Camera & clustering ───────────────────────────────────────────────────
    @abstractmethod
    async def get_cluster_expansion_zoom(self, source_id: str, cluster_id: int) -> float: ...

    @abstractmethod
    def ease_to(self, center: tuple[float, float], zoom: float) -> None: ...

    # ── Detail surfaces ───────────────────────────────────────────────────────
    @abstractmethod
    def open_popup(self, coordinates: Optional[tuple[float, float]], content: dict) -> Popup: ...

    # ── Export ────────────────────────────────────────────────────────────────
    @abstractmethod
    def capture_image(self) -> bytes:
        """Encoded image of the current canvas. May block."""
