"""
stats.py — Platform statistics models.

PlatformStats is compiled server-side from non-expired dreams
(services/stats_compiler.py). GrowthMetrics and StatsTrends are derived
on the client from the last good PlatformStats (client/stats.py).
"""

from datetime import datetime

from pydantic import BaseModel


class TopDestination(BaseModel):
    city: str
    count: int


class TopOriginStation(BaseModel):
    station: str
    country: str = ""
    count: int


class CountryDistribution(BaseModel):
    country: str
    country_name: str
    dream_count: int


class ActivityPoint(BaseModel):
    timeframe: str     # YYYY-MM-DD
    dream_count: int


class PlatformStats(BaseModel):
    total_dreams: int = 0
    active_stations: int = 0
    communities_forming: int = 0            # origin stations with ≥2 dreams
    countries_represented: int = 0
    dreams_today: int = 0
    dreams_this_week: int = 0
    top_destinations: list[TopDestination] = []
    top_origin_stations: list[TopOriginStation] = []
    geographic_distribution: list[CountryDistribution] = []
    recent_activity: list[ActivityPoint] = []   # last 7 days, zero-filled
    last_updated: datetime


class GrowthMetrics(BaseModel):
    avg_dreams_per_station: float
    community_formation_rate: int   # percent of active stations that are communities
    dreams_per_country: float


class StatsTrends(BaseModel):
    daily_trend: float
    weekly_total: int
    is_growing: bool
