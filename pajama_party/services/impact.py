"""
impact.py — Numbers for the advocacy impact dashboard.

Four pure aggregations over non-expired dream documents and pyjama party
signups, one per /api/impact endpoint:

  dreams_count    totals, today's dreams, participation rate
  growth_chart    30 zero-filled days with cumulative totals and weekly growth
  popular_routes  busiest origin → destination pairs, top origins and destinations
  stations_ready  stations tiered by pyjama party participants

Stations are matched between dreams and signups on the station name before
the first comma, case-insensitively ("Berlin Hbf, Germany" == "berlin hbf").

USAGE
─────
    from pajama_party.services.impact import stations_ready

    report = stations_ready(dream_docs, signup_docs, now)
    report.summary.ready_count
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

from pajama_party.models.impact import (
    DreamsCount,
    DreamsCountMetrics,
    GrowthChart,
    GrowthChartMetrics,
    GrowthDay,
    PeakDay,
    PopularDestination,
    PopularOrigin,
    PopularRoute,
    PopularRoutes,
    ReadyStation,
    StationsReady,
    StationsReadySummary,
)
from pajama_party.models.pyjama_party import ParticipationLevel
from pajama_party.services.advocacy import route_id

GROWTH_DAYS = 30
_WEEK = 7
_RECENT_WINDOW = timedelta(days=7)

_TOP_ROUTES = 20
_TOP_PLACES = 10

# Pyjama party participants a station needs per tier
CRITICAL_MASS_THRESHOLDS = {"ready": 50, "building": 20, "emerging": 5}
_TIER_LIMITS = {"ready": 20, "building": 15, "emerging": 10}


def _percent(part: int, whole: int) -> int:
    return min(100, round(100 * part / whole)) if whole else 0


def _day_start(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _created(doc: dict) -> datetime | None:
    created = doc.get("created_at")
    return created if isinstance(created, datetime) else None


def _created_times(docs: Iterable[dict]) -> list[datetime]:
    return [c for c in map(_created, docs) if c is not None]


def station_key(name: str) -> str:
    return name.split(",", 1)[0].strip().casefold()


# ── /api/impact/dreams-count ──────────────────────────────────────────────────

def dreams_count(dreams: Iterable[dict], signups: int, now: datetime) -> DreamsCount:
    dreams = list(dreams)
    today_start = _day_start(now)
    today = sum(1 for created in _created_times(dreams) if created >= today_start)
    return DreamsCount(
        total_dreams=len(dreams),
        participation_signups=signups,
        today_dreams=today,
        metrics=DreamsCountMetrics(
            momentum="growing" if today > 0 else "steady",
            participation_rate=_percent(signups, len(dreams)),
        ),
        last_updated=now,
    )


# ── /api/impact/growth-chart ──────────────────────────────────────────────────

def growth_chart(dreams: Iterable[dict], signups: Iterable[dict], now: datetime) -> GrowthChart:
    today_start = _day_start(now)
    days = [(today_start - timedelta(days=offset)).date() for offset in range(GROWTH_DAYS - 1, -1, -1)]

    dream_days = Counter(created.date() for created in _created_times(dreams))
    signup_days = Counter(created.date() for created in _created_times(signups))

    chart: list[GrowthDay] = []
    cumulative_dreams = cumulative_participants = 0
    for day in days:
        cumulative_dreams += dream_days[day]
        cumulative_participants += signup_days[day]
        chart.append(GrowthDay(
            date=day.isoformat(),
            formatted_date=f"{day:%b} {day.day}",
            weekday=f"{day:%a}",
            dreams=dream_days[day],
            participants=signup_days[day],
            cumulative_dreams=cumulative_dreams,
            cumulative_participants=cumulative_participants,
        ))

    last_week = sum(d.dreams for d in chart[-_WEEK:])
    previous_week = sum(d.dreams for d in chart[-2 * _WEEK:-_WEEK])
    growth = (last_week - previous_week) / previous_week * 100 if previous_week else 0.0
    peak = max(chart, key=lambda d: d.dreams)

    return GrowthChart(
        chart_data=chart,
        metrics=GrowthChartMetrics(
            total_dreams=cumulative_dreams,
            total_participants=cumulative_participants,
            last_7_days=last_week,
            weekly_growth_rate=round(growth, 1),
            peak_day=PeakDay(date=peak.formatted_date, dreams=peak.dreams),
            average_daily_dreams=round(cumulative_dreams / GROWTH_DAYS, 1),
            participation_rate=_percent(cumulative_participants, cumulative_dreams),
        ),
        last_updated=now,
    )


# ── /api/impact/routes-popular ────────────────────────────────────────────────

def popular_routes(dreams: Iterable[dict], now: datetime) -> PopularRoutes:
    pairs: Counter = Counter()
    origins: Counter = Counter()
    destinations: Counter = Counter()
    total = 0
    for d in dreams:
        origin, destination = d.get("origin_station"), d.get("destination_city")
        if not origin or not destination:
            continue
        total += 1
        pairs[(origin, destination)] += 1
        origins[origin] += 1
        destinations[destination] += 1

    # ties broken by name
    ranked = sorted(pairs.items(), key=lambda item: (-item[1], item[0]))
    return PopularRoutes(
        popular_routes=[
            PopularRoute(
                route=route_id(origin, destination),
                origin=origin,
                destination=destination,
                dream_count=count,
                percentage=_percent(count, total),
            )
            for (origin, destination), count in ranked[:_TOP_ROUTES]
        ],
        popular_destinations=[
            PopularDestination(city=city, dream_count=count)
            for city, count in sorted(destinations.items(), key=lambda i: (-i[1], i[0]))[:_TOP_PLACES]
        ],
        popular_origins=[
            PopularOrigin(station=station, dream_count=count)
            for station, count in sorted(origins.items(), key=lambda i: (-i[1], i[0]))[:_TOP_PLACES]
        ],
        total_routes=len(pairs),
        total_dreams=total,
        last_updated=now,
    )


# ── /api/impact/stations-ready ────────────────────────────────────────────────

@dataclass
class _StationTally:
    name: str
    dreams: int = 0
    participants: int = 0
    organizers: int = 0
    recent: int = 0

    @property
    def total_interest(self) -> int:
        return self.dreams + self.participants


def readiness_score(participants: int, organizers: int, recent: int, total_interest: int) -> float:
    """2 per participant, 10 per organizer, 1.5 per recent dream, up to 20 for the participation rate."""
    score = participants * 2 + organizers * 10 + recent * 1.5
    if total_interest:
        score += participants / total_interest * 20
    return round(score, 1)


def _tier(participants: int) -> str | None:
    for tier in ("ready", "building", "emerging"):
        if participants >= CRITICAL_MASS_THRESHOLDS[tier]:
            return tier
    return None


def stations_ready(dreams: Iterable[dict], signups: Iterable[dict], now: datetime) -> StationsReady:
    tallies: dict[str, _StationTally] = {}

    def tally(name: str) -> _StationTally:
        key = station_key(name)
        if key not in tallies:
            tallies[key] = _StationTally(name=name.strip())
        return tallies[key]

    for d in dreams:
        if not d.get("origin_station"):
            continue
        entry = tally(d["origin_station"])
        entry.dreams += 1
        created = _created(d)
        if created is not None and now - created <= _RECENT_WINDOW:
            entry.recent += 1

    for s in signups:
        if not s.get("preferred_station"):
            continue
        entry = tally(s["preferred_station"])
        entry.participants += 1
        if s.get("participation_level") == ParticipationLevel.COORDINATOR.value:
            entry.organizers += 1

    tiers: dict[str, list[ReadyStation]] = {"ready": [], "building": [], "emerging": []}
    for entry in tallies.values():
        tier = _tier(entry.participants)
        if tier is None:
            continue
        tiers[tier].append(ReadyStation(
            station=entry.name,
            total_interest=entry.total_interest,
            participants=entry.participants,
            organizers=entry.organizers,
            recent_activity=entry.recent,
            readiness_score=readiness_score(entry.participants, entry.organizers, entry.recent, entry.total_interest),
            momentum="growing" if entry.recent > 0 else "steady",
            has_organizer=entry.organizers > 0,
            participation_rate=_percent(entry.participants, entry.total_interest),
        ))
    counts = {name: len(stations) for name, stations in tiers.items()}
    for name, stations in tiers.items():
        stations.sort(key=lambda s: (-s.readiness_score, s.station))
        del stations[_TIER_LIMITS[name]:]

    with_participants = sum(1 for t in tallies.values() if t.participants > 0)
    summary = StationsReadySummary(
        total_stations=len(tallies),
        ready_count=counts["ready"],
        building_count=counts["building"],
        emerging_count=counts["emerging"],
        stations_with_participants=with_participants,
        stations_with_organizers=sum(1 for t in tallies.values() if t.organizers > 0),
        coverage_rate=_percent(with_participants, len(tallies)),
    )
    return StationsReady(
        ready_stations=tiers["ready"],
        building_stations=tiers["building"],
        emerging_stations=tiers["emerging"],
        summary=summary,
        thresholds=dict(CRITICAL_MASS_THRESHOLDS),
        last_updated=now,
    )
