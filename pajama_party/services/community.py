"""
community.py — Community formation at origin stations.

A community is two or more non-expired dreams sharing exactly the same
origin_station string (case-sensitive). The message returned after a
submission escalates with the count.
"""

from __future__ import annotations

import logging
from datetime import datetime

logger = logging.getLogger(__name__)

# (minimum count, template), checked top-down
_MESSAGES = [
    (5, "Amazing! {count} dreamers from {station} are planning pajama parties! This is becoming a movement!"),
    (3, "Wonderful! {count} dreamers from {station} are planning pajama parties! Community is forming!"),
    (2, "Great! {count} dreamers from {station} are planning pajama parties! You're not alone!"),
]


def community_message(count: int, station: str) -> str | None:
    """Message for `count` dreams at `station`, or None below the community threshold."""
    for minimum, template in _MESSAGES:
        if count >= minimum:
            return template.format(count=count, station=station)
    return None


def active_filter(now: datetime, **extra) -> dict:
    """Mongo filter for dreams that have not expired yet."""
    return {"expires_at": {"$gt": now}, **extra}


async def count_station_dreams(db, station: str, now: datetime) -> int:
    """Non-expired dreams whose origin_station equals `station` exactly."""
    try:
        return await db["dreams"].count_documents(active_filter(now, origin_station=station))
    except Exception as exc:
        logger.warning("Community count failed for %r: %s", station, exc)
        return 0
