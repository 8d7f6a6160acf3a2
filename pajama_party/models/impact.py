"""
impact.py — Advocacy impact dashboard models (/api/impact/*).
"""

from datetime import datetime

from pydantic import BaseModel


class DreamsCountMetrics(BaseModel):
    momentum: str                 # growing | steady
    participation_rate: int       # % of dreams with a pyjama party signup


class DreamsCount(BaseModel):
    total_dreams: int
    participation_signups: int
    today_dreams: int
    metrics: DreamsCountMetrics
    last_updated: datetime


class GrowthDay(BaseModel):
    date: str                     # YYYY-MM-DD
    formatted_date: str           # "Oct 19"
    weekday: str                  # "Mon"
    dreams: int
    participants: int
    cumulative_dreams: int
    cumulative_participants: int


class PeakDay(BaseModel):
    date: str
    dreams: int


class GrowthChartMetrics(BaseModel):
    total_dreams: int
    total_participants: int
    last_7_days: int
    weekly_growth_rate: float
    peak_day: PeakDay
    average_daily_dreams: float
    participation_rate: int


class GrowthChart(BaseModel):
    chart_data: list[GrowthDay]
    metrics: GrowthChartMetrics
    last_updated: datetime


class PopularRoute(BaseModel):
    route: str
    origin: str
    destination: str
    dream_count: int
    percentage: int


class PopularDestination(BaseModel):
    city: str
    dream_count: int


class PopularOrigin(BaseModel):
    station: str
    dream_count: int


class PopularRoutes(BaseModel):
    popular_routes: list[PopularRoute]
    popular_destinations: list[PopularDestination]
    popular_origins: list[PopularOrigin]
    total_routes: int
    total_dreams: int
    last_updated: datetime


class ReadyStation(BaseModel):
    station: str
    total_interest: int
    participants: int
    organizers: int
    recent_activity: int
    readiness_score: float
    momentum: str
    has_organizer: bool
    participation_rate: int


class StationsReadySummary(BaseModel):
    total_stations: int
    ready_count: int
    building_count: int
    emerging_count: int
    stations_with_participants: int
    stations_with_organizers: int
    coverage_rate: int


class StationsReady(BaseModel):
    ready_stations: list[ReadyStation]
    building_stations: list[ReadyStation]
    emerging_stations: list[ReadyStation]
    summary: StationsReadySummary
    thresholds: dict[str, int]
    last_updated: datetime
