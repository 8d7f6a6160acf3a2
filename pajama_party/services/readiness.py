"""
readiness.py — Critical-mass scoring for origin stations.

A station's readiness describes how close it is to hosting a pajama party
(a coordinated gathering of dreamers on the platform). Everything here is
derived from dream counts; nothing is stored.

USAGE
─────
    from pajama_party.services.readiness import aggregate_readiness

    stations, summary = aggregate_readiness(dream_docs, now, min_dreams=2)
    # stations[0].readiness_level → "critical"
    # summary.ready_percentage    → 40

TESTING
────────
    pytest tests/test_readiness.py -v
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable

from pajama_party.models.station import ReadinessSummary, StationReadiness

# ── Thresholds (dream counts) ─────────────────────────────────────────────────

_LEVEL_THRESHOLDS = [
    (50, "critical"),
    (20, "high"),
    (10, "medium"),
    (0,  "low"),
]

READY_LEVELS = frozenset({"critical", "high"})

_SCORE_SCALE = 40.0          # count at which score reaches ~63
_POTENTIAL_BOOST = 1.1
_RECENT_BONUS = 5            # per recent dream, capped
_RECENT_BONUS_CAP = 3
_RECENT_WINDOW = timedelta(days=7)


# ── Pure scoring functions ────────────────────────────────────────────────────

def readiness_level(count: int) -> str:
    for threshold, level in _LEVEL_THRESHOLDS:
        if count >= threshold:
            return level
    return "low"


def readiness_score(count: int) -> int:
    """0–100, saturating: 10 dreams → 22, 20 → 39, 50 → 71, 100 → 92."""
    if count <= 0:
        return 0
    return round(100 * (1 - math.exp(-count / _SCORE_SCALE)))


def party_potential(score: int, recent: int = 0) -> int:
    """Readiness score boosted by recent momentum, capped at 100."""
    bonus = _RECENT_BONUS * min(max(recent, 0), _RECENT_BONUS_CAP)
    return min(100, round(score * _POTENTIAL_BOOST) + bonus)


def assess_station(
    station: str,
    count: int,
    coordinates: list[float] | None = None,
    recent: int = 0,
    country: str | None = None,
) -> StationReadiness:
    score = readiness_score(count)
    return StationReadiness(
        station=station,
        coordinates=coordinates,
        country=country,
        dream_count=count,
        recent_dreams=recent,
        readiness_level=readiness_level(count),
        readiness_score=score,
        pajama_party_potential=party_potential(score, recent),
    )


def aggregate_readiness(
    dreams: Iterable[dict],
    now: datetime,
    min_dreams: int = 1,
) -> tuple[list[StationReadiness], ReadinessSummary]:
    """
    Group dream documents by exact origin_station and score each group.

    The first dream with coordinates provides the station's [lng, lat].
    Stations below min_dreams are dropped; the rest are sorted by count
    (descending), then name.
    """
    counts: dict[str, int] = defaultdict(int)
    recent: dict[str, int] = defaultdict(int)
    coords: dict[str, list[float]] = {}
    countries: dict[str, str] = {}

    for doc in dreams:
        station = doc.get("origin_station")
        if not station:
            continue
        counts[station] += 1
        created = doc.get("created_at")
        if isinstance(created, datetime) and now - created <= _RECENT_WINDOW:
            recent[station] += 1
        if station not in coords and doc.get("origin_lat") is not None and doc.get("origin_lng") is not None:
            coords[station] = [doc["origin_lng"], doc["origin_lat"]]
        if station not in countries and doc.get("origin_country"):
            countries[station] = doc["origin_country"]

    entries = [
        assess_station(name, count, coords.get(name), recent[name], countries.get(name))
        for name, count in counts.items()
        if count >= min_dreams
    ]
    entries.sort(key=lambda s: (-s.dream_count, s.station))

    ready = sum(1 for s in entries if s.readiness_level in READY_LEVELS)
    summary = ReadinessSummary(
        total_stations=len(entries),
        ready_stations=ready,
        total_dreams=sum(s.dream_count for s in entries),
        ready_percentage=round(100 * ready / len(entries)) if entries else 0,
    )
    return entries, summary
