"""
dream_repository.py — Shared MongoDB reads over the `dreams`, `stations` and
`pyjama_party_signups` collections.

Routes that aggregate over dreams (stats, readiness, advocacy, map
features) all start from the same "every non-expired dream" read, so it
lives here once. Nothing in the service ever deletes a dream: expiry is
enforced purely by filtering on expires_at.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from pajama_party.models.dream import Dream
from pajama_party.services.community import active_filter

logger = logging.getLogger(__name__)

# Upper bound on documents pulled into memory for aggregation
MAX_AGGREGATE_DOCS = 50_000

_PUBLIC_PROJECTION = {"email": 0}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes from the driver as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def doc_to_dream(doc: dict) -> Dream:
    now = datetime.now(timezone.utc)
    return Dream(
        id=str(doc["_id"]),
        dreamer_name=doc.get("dreamer_name", ""),
        origin_station=doc.get("origin_station", ""),
        origin_country=doc.get("origin_country"),
        origin_lat=doc.get("origin_lat"),
        origin_lng=doc.get("origin_lng"),
        destination_city=doc.get("destination_city", ""),
        destination_country=doc.get("destination_country"),
        destination_lat=doc.get("destination_lat"),
        destination_lng=doc.get("destination_lng"),
        email_verified=bool(doc.get("email_verified", False)),
        created_at=as_utc(doc.get("created_at", now)),
        expires_at=as_utc(doc.get("expires_at", now)),
    )


async def load_active_dreams(
    db, now: datetime, limit: int = MAX_AGGREGATE_DOCS, *, raise_on_error: bool = False
) -> list[dict]:
    """
    Every non-expired dream document (email stripped), newest first.

    Returns [] on database errors so aggregate endpoints degrade to empty
    values instead of failing. Callers that cache the result pass
    raise_on_error=True so an outage is never stored as real data.
    """
    docs: list[dict] = []
    try:
        cursor = db["dreams"].find(active_filter(now), _PUBLIC_PROJECTION).sort("created_at", -1).limit(limit)
        async for doc in cursor:
            if isinstance(doc.get("created_at"), datetime):
                doc["created_at"] = as_utc(doc["created_at"])
            docs.append(doc)
    except Exception as exc:
        logger.error("Loading active dreams failed: %s", exc)
        if raise_on_error:
            raise
        return []
    return docs


async def load_active_signups(db, now: datetime, *, raise_on_error: bool = False) -> list[dict]:
    """Non-expired pyjama party signups, station and level only (no personal data)."""
    projection = {"preferred_station": 1, "participation_level": 1, "created_at": 1}
    docs: list[dict] = []
    try:
        async for doc in db["pyjama_party_signups"].find(active_filter(now), projection).limit(MAX_AGGREGATE_DOCS):
            if isinstance(doc.get("created_at"), datetime):
                doc["created_at"] = as_utc(doc["created_at"])
            docs.append(doc)
    except Exception as exc:
        logger.error("Loading pyjama party signups failed: %s", exc)
        if raise_on_error:
            raise
        return []
    return docs


def _station_name_key(name: str) -> str:
    """'Berlin Hauptbahnhof, Germany' → 'Berlin Hauptbahnhof'."""
    return name.split(",", 1)[0].strip()


async def geocode_station(db, name: str) -> dict | None:
    """
    Find a station document whose name matches `name` case-insensitively.

    Tries the exact name first, then the part before the first comma
    (the web form appends the country to the station label).
    """
    candidates = [name.strip(), _station_name_key(name)]
    for candidate in dict.fromkeys(c for c in candidates if c):
        try:
            doc = await db["stations"].find_one(
                {"name": {"$regex": f"^{re.escape(candidate)}$", "$options": "i"}}
            )
        except Exception as exc:
            logger.warning("Station lookup failed for %r: %s", candidate, exc)
            return None
        if doc:
            return doc
    return None


async def geocode_city(db, city: str) -> dict | None:
    """First station in `city` (case-insensitive), falling back to a station name match."""
    key = _station_name_key(city)
    if not key:
        return None
    try:
        doc = await db["stations"].find_one({"city": {"$regex": f"^{re.escape(key)}$", "$options": "i"}})
    except Exception as exc:
        logger.warning("City lookup failed for %r: %s", key, exc)
        return None
    return doc or await geocode_station(db, city)


async def country_names(db) -> dict[str, str]:
    """ISO country code → display name, as known from the station directory."""
    names: dict[str, str] = {}
    try:
        async for doc in db["stations"].find({}, {"country": 1, "country_name": 1}):
            code = doc.get("country")
            if code and code not in names and doc.get("country_name"):
                names[code] = doc["country_name"]
    except Exception as exc:
        logger.warning("Country name lookup failed: %s", exc)
    return names
