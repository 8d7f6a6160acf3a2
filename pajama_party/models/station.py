"""
station.py — Railway station directory and station readiness models.

Stations are read-only reference data (seeded by scripts/seed_db.py).
StationReadiness is never stored: it is derived from dream counts per
origin station every time it is requested.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Station(BaseModel):
    id: str
    name: str
    city: str = ""
    country: str = ""          # ISO 3166-1 alpha-2
    country_name: str = ""
    lat: float
    lng: float
    station_type: str = "station"

    @property
    def coordinates(self) -> list[float]:
        return [self.lng, self.lat]


class StationOut(BaseModel):
    """Search result shape: coordinates as [lng, lat]."""

    id: str
    name: str
    city: str = ""
    country: str = ""
    coordinates: list[float]


class StationSearchResponse(BaseModel):
    stations: list[StationOut]
    query: str
    total: int


class StationReadiness(BaseModel):
    """Critical-mass view of one origin station."""

    model_config = ConfigDict(populate_by_name=True)

    station: str
    coordinates: Optional[list[float]] = None                 # [lng, lat]
    country: Optional[str] = None
    dream_count: int = Field(alias="dreamCount")
    recent_dreams: int = Field(0, alias="recentDreams")       # last 7 days
    readiness_level: str = Field(alias="readinessLevel")      # critical | high | medium | low
    readiness_score: int = Field(alias="readinessScore")      # 0–100
    pajama_party_potential: int = Field(alias="pajamaPartyPotential")  # 0–100


class ReadinessSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_stations: int = Field(alias="totalStations")
    ready_stations: int = Field(alias="readyStations")
    total_dreams: int = Field(alias="totalDreams")
    ready_percentage: int = Field(alias="readyPercentage")


class AggregatedStationsResponse(BaseModel):
    stations: list[StationReadiness]
    summary: ReadinessSummary
