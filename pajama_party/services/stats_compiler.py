"""
stats_compiler.py — Builds PlatformStats from non-expired dream documents.

compile_stats() is pure: it takes the dream documents and a clock so the
numbers are testable without a database. StatsCache holds the compiled
result for a few minutes (stats are read on every page view and change
slowly).
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from pajama_party.models.stats import (
    ActivityPoint,
    CountryDistribution,
    PlatformStats,
    TopDestination,
    TopOriginStation,
)

logger = logging.getLogger(__name__)

_TOP_N = 10
_ACTIVITY_DAYS = 7
COMMUNITY_MIN_DREAMS = 2


def compile_stats(
    dreams: Iterable[dict],
    now: datetime,
    country_names: Optional[dict[str, str]] = None,
) -> PlatformStats:
    """Aggregate dream documents (already filtered to non-expired) into PlatformStats."""
    dreams = list(dreams)
    country_names = country_names or {}

    origins = Counter(d["origin_station"] for d in dreams if d.get("origin_station"))
    destinations = Counter(d["destination_city"] for d in dreams if d.get("destination_city"))
    countries = Counter(d["origin_country"] for d in dreams if d.get("origin_country"))

    origin_country: dict[str, str] = {}
    for d in dreams:
        if d.get("origin_station") and d.get("origin_country"):
            origin_country.setdefault(d["origin_station"], d["origin_country"])

    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = now - timedelta(days=_ACTIVITY_DAYS)

    per_day: Counter = Counter()
    dreams_today = dreams_this_week = 0
    for d in dreams:
        created = d.get("created_at")
        if not isinstance(created, datetime):
            continue
        if created >= today_start:
            dreams_today += 1
        if created >= week_start:
            dreams_this_week += 1
        per_day[created.date().isoformat()] += 1

    activity = []
    for offset in range(_ACTIVITY_DAYS - 1, -1, -1):
        day = (today_start - timedelta(days=offset)).date().isoformat()
        activity.append(ActivityPoint(timeframe=day, dream_count=per_day.get(day, 0)))

    return PlatformStats(
        total_dreams=len(dreams),
        active_stations=len(origins),
        communities_forming=sum(1 for c in origins.values() if c >= COMMUNITY_MIN_DREAMS),
        countries_represented=len(countries),
        dreams_today=dreams_today,
        dreams_this_week=dreams_this_week,
        top_destinations=[
            TopDestination(city=city, count=count)
            for city, count in destinations.most_common(_TOP_N)
        ],
        top_origin_stations=[
            TopOriginStation(station=station, country=origin_country.get(station, ""), count=count)
            for station, count in origins.most_common(_TOP_N)
        ],
        geographic_distribution=[
            CountryDistribution(country=code, country_name=country_names.get(code, code), dream_count=count)
            for code, count in countries.most_common()
        ],
        recent_activity=activity,
        last_updated=now,
    )


class StatsCache:
    """
    Single-slot TTL cache for the compiled stats.

    The clock is injectable so tests can expire entries without sleeping.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[PlatformStats] = None
        self._stored_at = 0.0

    def get(self) -> Optional[PlatformStats]:
        if self._value is None:
            return None
        if self._clock() - self._stored_at >= self.ttl_seconds:
            logger.debug("Stats cache expired")
            self._value = None
            return None
        return self._value

    def set(self, value: PlatformStats) -> None:
        self._value = value
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._value = None
