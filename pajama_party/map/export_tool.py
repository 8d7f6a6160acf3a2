"""
export_tool.py — Export the current map view as a shareable image.

Capture and compositing both block (canvas readback, Pillow), so they run
in a worker thread via asyncio.to_thread and never stall the event loop.
A failed export is reported on `error`; it never passes silently.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from pajama_party.core.config import settings
from pajama_party.map.handle import MapHandle
from pajama_party.models.export import ShareLinks
from pajama_party.services.map_export import ExportError, ExportOptions, ExportResult, export_map, share_links

logger = logging.getLogger(__name__)

DEFAULT_SHARE_TEXT = "I'm dreaming of a night train across Europe! Add your dream to the map:"


class MapExportTool:
    def __init__(self, handle: MapHandle, *, site_url: Optional[str] = None) -> None:
        self.handle = handle
        self.site_url = site_url or settings.public_site_url
        self.is_exporting = False
        self.error: Optional[str] = None
        self.last_result: Optional[ExportResult] = None

    async def export(self, options: Optional[ExportOptions] = None) -> Optional[ExportResult]:
        options = options or ExportOptions()
        self.is_exporting = True
        self.error = None
        try:
            capture = await asyncio.to_thread(self.handle.capture_image)
            if not capture:
                raise ExportError("The map returned an empty image")
            result = await asyncio.to_thread(export_map, capture, options)
        except ExportError as exc:
            logger.warning("Map export failed: %s", exc)
            self.error = str(exc)
            return None
        except Exception as exc:
            logger.error("Map capture failed: %s", exc)
            self.error = "Could not capture the map. Please try again."
            return None
        finally:
            self.is_exporting = False

        self.last_result = result
        logger.info("Exported map %s (%dx%d)", result.filename, result.width, result.height)
        return result

    def share_links(self, text: str = DEFAULT_SHARE_TEXT) -> ShareLinks:
        return share_links(self.site_url, text)

    @staticmethod
    def save(result: ExportResult, directory: Path) -> Path:
        """Write the image under its download filename and return the path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / result.filename
        path.write_bytes(result.data)
        return path
