"""
dream.py — Pydantic models for dream submissions.

A Dream is one person's wish for a night train from an origin station to
a destination city. Documents live in the `dreams` collection:

  {
    "dreamer_name": "Anna",
    "origin_station": "Berlin Hauptbahnhof",
    "origin_country": "DE",
    "origin_lat": 52.5251, "origin_lng": 13.3691,
    "destination_city": "Barcelona",
    "destination_country": "ES",
    "destination_lat": 41.3794, "destination_lng": 2.1404,
    "email": "anna@example.com",          ← stored, never returned
    "email_verified": false,
    "created_at": ISODate(...),
    "expires_at": ISODate(...)             ← created_at + 30 days
  }

Both field spellings seen in the wild are accepted on input: the canonical
snake_case one and the short form used by the newer web form
(`from`, `to`, `dreamerName`).
"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class DreamCreate(BaseModel):
    """
    Raw POST /api/dreams body.

    Every field is optional at this layer; dream_validation.validate_dream
    applies the real rules so the response can list all problems at once.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    dreamer_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("dreamer_name", "dreamerName", "name")
    )
    origin_station: Optional[str] = Field(
        None, validation_alias=AliasChoices("origin_station", "from", "originStation")
    )
    origin_country: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    destination_city: Optional[str] = Field(
        None, validation_alias=AliasChoices("destination_city", "to", "destinationCity")
    )
    destination_country: Optional[str] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    email: Optional[str] = None


class Dream(BaseModel):
    """Public view of a dream. `email` is deliberately absent."""

    id: str
    dreamer_name: str
    origin_station: str
    origin_country: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    destination_city: str
    destination_country: Optional[str] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    email_verified: bool = False
    created_at: datetime
    expires_at: datetime

    @property
    def origin_coordinates(self) -> Optional[tuple[float, float]]:
        """[lng, lat] of the origin, or None when not geocoded."""
        if self.origin_lat is None or self.origin_lng is None:
            return None
        return (self.origin_lng, self.origin_lat)

    @property
    def destination_coordinates(self) -> Optional[tuple[float, float]]:
        if self.destination_lat is None or self.destination_lng is None:
            return None
        return (self.destination_lng, self.destination_lat)


class DreamListResponse(BaseModel):
    dreams: list[Dream]
    total: int
    limit: int
    offset: int
    has_more: bool


class DreamSubmitResponse(BaseModel):
    success: bool = True
    dream: Dream
    community_message: Optional[str] = None  # shown once after submit, never stored
    message: str = "Dream submitted successfully"
    timestamp: datetime


_FORM_ONLY = {"join_pyjama_party", "participation_level", "newsletter_consent", "privacy_consent"}


class DreamDraft(BaseModel):
    """
    What a person fills in on the dream form (client side).

    join_pyjama_party makes the email and privacy consent mandatory and
    signs the dreamer up at their origin station after the dream is
    stored. Otherwise privacy_consent is only enforced by the accessible
    form variant.
    """

    dreamer_name: str = ""
    origin_station: str = ""
    origin_country: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    destination_city: str = ""
    destination_country: Optional[str] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    email: str = ""
    join_pyjama_party: bool = False
    participation_level: str = "attend"     # attend | volunteer | coordinator
    newsletter_consent: bool = False
    privacy_consent: bool = False

    def to_payload(self) -> dict:
        """Body for POST /api/dreams (form-only flags stripped, blanks dropped)."""
        data = self.model_dump(exclude=_FORM_ONLY)
        return {k: v.strip() if isinstance(v, str) else v for k, v in data.items() if v not in (None, "")}

    def to_signup_payload(self) -> dict:
        """Body for POST /api/pyjama-parties."""
        return {
            "name": self.dreamer_name.strip(),
            "email": self.email.strip(),
            "preferred_station": self.origin_station.strip(),
            "participation_level": self.participation_level,
            "newsletter_consent": self.newsletter_consent,
            "privacy_consent": self.privacy_consent,
        }
