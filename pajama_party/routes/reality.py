"""
reality.py — The existing night-train network (Reality layer).

Routes:
  GET /api/reality/map            — {stations, routes, lastUpdated}, cached 10 minutes
  GET /reality-network.geojson    — the raw static FeatureCollection (client fallback)
"""

import logging

from fastapi import APIRouter, HTTPException, Response
from fastapi.responses import FileResponse

from pajama_party.core.config import settings
from pajama_party.models.map import RealityMapResponse
from pajama_party.services.reality_network import RealityDataError, RealityNetworkCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reality"])

reality_cache = RealityNetworkCache(settings.reality_data_path, settings.reality_cache_seconds)

_CACHE_CONTROL = "public, s-maxage=600, stale-while-revalidate=1200"


@router.get("/api/reality/map", response_model=RealityMapResponse)
async def reality_map(response: Response):
    try:
        payload = reality_cache.get()
    except RealityDataError as exc:
        logger.error("Reality map unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to load reality data")
    response.headers["Cache-Control"] = _CACHE_CONTROL
    return payload


@router.get("/reality-network.geojson", include_in_schema=False)
async def reality_geojson():
    return FileResponse(
        settings.reality_data_path,
        media_type="application/geo+json",
        headers={"Cache-Control": _CACHE_CONTROL},
    )
