"""
map.py — Map support routes for front ends.

Routes:
  GET  /api/map/layers    — the source/layer registry (IDs, clustering, draw order)
  GET  /api/map/features  — dream routes, dream stations and heat points as GeoJSON
  POST /api/map/export    — compose a shareable image from a base64 canvas capture (10/minute)

HOW EXPORT WORKS
────────────────
The browser captures its canvas and posts it as base64. The server
scales it, draws the caption, watermark and attribution with Pillow (in a
worker thread), and returns the encoded image together with prefilled
share links.
"""

import asyncio
import base64
import binascii
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from pajama_party.core.config import settings
from pajama_party.core.database import get_db
from pajama_party.core.rate_limit import EXPORT_LIMIT, limiter
from pajama_party.map.features import dream_routes, route_demand, route_features, station_features
from pajama_party.map.heatmap import generate_heat_points
from pajama_party.map.layers import LAYERS, SOURCES
from pajama_party.models.export import ExportRequest, ExportResponse
from pajama_party.models.map import (
    DreamFeaturesResponse,
    FeatureCollection,
    LayerInfo,
    LayerRegistryResponse,
    SourceInfo,
)
from pajama_party.services.dream_repository import doc_to_dream, load_active_dreams
from pajama_party.services.map_export import ExportError, ExportOptions, export_map, share_links

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/map", tags=["map"])

_DEFAULT_SHARE_TEXT = "Europe is dreaming of night trains. See where people want to go:"


@router.get("/layers", response_model=LayerRegistryResponse)
async def layer_registry():
    layers = [
        LayerInfo(id=layer.id, group=group.value, source=layer.source, type=layer.type, minzoom=layer.minzoom)
        for group, specs in LAYERS.items()
        for layer in specs
    ]
    sources = [
        SourceInfo(
            id=s.id,
            cluster=s.cluster,
            cluster_max_zoom=s.cluster_max_zoom,
            cluster_radius=s.cluster_radius,
        )
        for s in SOURCES.values()
    ]
    return LayerRegistryResponse(layers=layers, sources=sources)


@router.get("/features", response_model=DreamFeaturesResponse)
async def dream_features(db=Depends(get_db)):
    empty = FeatureCollection()
    if db is None:
        return DreamFeaturesResponse(routes=empty, stations=empty, heat=empty)

    docs = await load_active_dreams(db, datetime.now(timezone.utc))
    dreams = []
    for doc in docs:
        try:
            dreams.append(doc_to_dream(doc))
        except Exception as exc:
            logger.warning("Skipping malformed dream doc: %s", exc)

    return DreamFeaturesResponse(
        routes=FeatureCollection.model_validate(route_features(dream_routes(dreams))),
        stations=FeatureCollection.model_validate(station_features(dreams)),
        heat=FeatureCollection.model_validate(generate_heat_points(route_demand(dreams))),
    )


@router.post("/export", response_model=ExportResponse)
@limiter.limit(EXPORT_LIMIT)
async def export_image(request: Request, payload: ExportRequest):
    try:
        capture = base64.b64decode(payload.image_b64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="image_b64 is not valid base64")

    overrides = {
        "format": payload.format,
        "quality": payload.quality,
        "overlay_text": payload.overlay_text,
        "overlay_position": payload.overlay_position,
        "include_watermark": payload.include_watermark,
        "include_attribution": payload.include_attribution,
    }
    try:
        if payload.preset:
            options = ExportOptions.for_preset(payload.preset, **overrides)
        else:
            options = ExportOptions(width=payload.width, height=payload.height, **overrides)
        result = await asyncio.to_thread(export_map, capture, options)
    except ExportError as exc:
        raise HTTPException(status_code=400, detail={"error": "Export failed", "message": str(exc)})

    return ExportResponse(
        filename=result.filename,
        content_type=result.content_type,
        image_b64=base64.b64encode(result.data).decode(),
        width=result.width,
        height=result.height,
        share_links=share_links(settings.public_site_url, payload.share_text or _DEFAULT_SHARE_TEXT),
    )
