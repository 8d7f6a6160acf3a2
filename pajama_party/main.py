"""
Pajama Party API — Application entry point.

Bootstraps FastAPI, wires up middleware and error rendering, registers
route groups, and manages the MongoDB connection lifecycle.

Run locally:
    uvicorn pajama_party.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from pajama_party import __version__
from pajama_party.core.config import settings
from pajama_party.core.database import close_mongo_connection, connect_to_mongo
from pajama_party.core.errors import http_exception_handler, validation_exception_handler
from pajama_party.core.rate_limit import limiter
from pajama_party.routes.analytics import router as analytics_router
from pajama_party.routes.dreams import router as dreams_router
from pajama_party.routes.health import router as health_router
from pajama_party.routes.impact import router as impact_router
from pajama_party.routes.map import router as map_router
from pajama_party.routes.places import router as places_router
from pajama_party.routes.pyjama_parties import router as pyjama_parties_router
from pajama_party.routes.reality import router as reality_router
from pajama_party.routes.stations import router as stations_router
from pajama_party.routes.stats import router as stats_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open MongoDB on startup, close it on shutdown."""
    logger.info("Starting Pajama Party API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    logger.info("Shutting down Pajama Party API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Pajama Party API",
    description=(
        "Night-train dreams, station search, community statistics and the "
        "dream/reality map data behind pajama-party.eu."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Errors & rate limiting ────────────────────────────────────────────────────
# Routes opt-in to limits with @limiter.limit("N/minute") + request: Request parameter.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Cache"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])

# Dreams & community
app.include_router(dreams_router)
app.include_router(stations_router)
app.include_router(stats_router)
app.include_router(pyjama_parties_router)

# Map data
app.include_router(places_router)
app.include_router(reality_router)
app.include_router(map_router)

# Analytics & advocacy
app.include_router(analytics_router)
app.include_router(impact_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "Pajama Party API",
        "version": __version__,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
