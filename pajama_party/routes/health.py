"""
Health check endpoint.

Returns status + DB connectivity so callers can distinguish between
"API down" and "API up but DB unreachable".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from pajama_party import __version__
from pajama_party.core.config import settings
from pajama_party.core.database import ping_database

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    Liveness of the API and its database connection.

    HTTP 200 even when the database is disconnected: dream submission is
    down but the map, reality network and search degrade gracefully.
    """
    db_status = "connected" if await ping_database() else "disconnected"

    return HealthResponse(
        status="ok",
        version=__version__,
        database=db_status,
        environment=settings.environment,
    )
