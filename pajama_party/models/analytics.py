"""
analytics.py — Consented analytics events and route/station advocacy stats.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field


class AnalyticsEventIn(BaseModel):
    event: str = Field(..., min_length=1)
    properties: dict[str, Union[str, int, float, bool, None]] = {}
    timestamp: Optional[datetime] = None   # client clock; server falls back to now


class AnalyticsEventResponse(BaseModel):
    success: bool
    stored: bool          # False when the database is unavailable


# ── Advocacy ──────────────────────────────────────────────────────────────────

class RouteAdvocacy(BaseModel):
    route_id: str                 # "<origin>→<destination>"
    origin_station: str
    destination_city: str
    dreamer_count: int
    distance_km: Optional[float] = None
    potential_co2_savings_kg: Optional[float] = None   # per passenger, train vs flight
    travel_time: Optional[str] = None                   # e.g. "11h 20m"
    share_text: str


class StationAdvocacy(BaseModel):
    station_id: str
    outbound_demand: int          # dreams starting here
    inbound_demand: int           # dreams whose destination matches this city
    top_destinations: list[str]
    readiness_level: str
    share_text: str
