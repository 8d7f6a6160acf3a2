"""
pyjama_party.py — Pajama party participation signups.

Ticking "join a pyjama party" on the dream form signs the dreamer up to
take part in the gathering at their origin station. Documents live in the
`pyjama_party_signups` collection:

  {
    "name": "Anna",
    "email": "anna@example.com",           ← stored, never returned
    "preferred_station": "Berlin Hauptbahnhof",
    "participation_level": "volunteer",    ← attend | volunteer | coordinator
    "message": null,
    "newsletter_consent": false,
    "privacy_consent": true,
    "consent_version": "1.0",
    "legal_basis": "consent",
    "email_verified": false,
    "created_at": ISODate(...),
    "expires_at": ISODate(...)             ← created_at + signup_retention_days
  }
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ParticipationLevel(str, Enum):
    ATTEND = "attend"
    VOLUNTEER = "volunteer"
    COORDINATOR = "coordinator"


class SignupCreate(BaseModel):
    """
    Raw POST /api/pyjama-parties body.

    Loose like DreamCreate: signup_validation.validate_signup applies the
    rules so every problem is reported at once.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "dreamer_name", "dreamerName"))
    email: Optional[str] = None
    preferred_station: Optional[str] = Field(
        None, validation_alias=AliasChoices("preferred_station", "preferredStation", "origin_station", "from")
    )
    participation_level: Optional[str] = Field(
        ParticipationLevel.ATTEND.value,
        validation_alias=AliasChoices("participation_level", "participationLevel"),
    )
    message: Optional[str] = None
    newsletter_consent: bool = Field(
        False, validation_alias=AliasChoices("newsletter_consent", "newsletterConsent")
    )
    privacy_consent: bool = Field(False, validation_alias=AliasChoices("privacy_consent", "privacyConsent"))
    source_page: Optional[str] = Field(None, validation_alias=AliasChoices("source_page", "sourcePage"))


class SignupResponse(BaseModel):
    success: bool = True
    signup_id: str
    message: str = "Thank you for joining the European Pajama Party! Please check your email for verification instructions."
    next_steps: list[str] = []
    timestamp: datetime


class StationParticipation(BaseModel):
    station: str
    participants: int
    volunteers: int = 0
    organizers: int = 0


class ParticipationResponse(BaseModel):
    stations: list[StationParticipation]
    total_signups: int
