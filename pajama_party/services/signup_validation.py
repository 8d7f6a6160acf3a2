"""
signup_validation.py — Server-side rules for POST /api/pyjama-parties.

Pure functions, the same shape as dream_validation: validate_signup()
lists every broken rule, sanitize_signup() builds the stored document.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pajama_party.models.pyjama_party import ParticipationLevel, SignupCreate
from pajama_party.services.dream_validation import EMAIL_PATTERN

_NAME_MAX = 255
_EMAIL_MAX = 255
_STATION_MIN, _STATION_MAX = 2, 255
_MESSAGE_MAX = 1000
_SOURCE_PAGE_MAX = 500

CONSENT_VERSION = "1.0"
_LEVELS = {level.value for level in ParticipationLevel}


def validate_signup(payload: SignupCreate) -> list[str]:
    errors: list[str] = []

    name = (payload.name or "").strip()
    if not name:
        errors.append("name is required")
    elif len(name) > _NAME_MAX:
        errors.append(f"name must be less than {_NAME_MAX} characters")

    email = (payload.email or "").strip()
    if not email:
        errors.append("email is required to join a pyjama party")
    elif len(email) > _EMAIL_MAX or not EMAIL_PATTERN.match(email):
        errors.append("email must be a valid email address")

    station = (payload.preferred_station or "").strip()
    if not station:
        errors.append("preferred_station is required")
    elif not _STATION_MIN <= len(station) <= _STATION_MAX:
        errors.append(f"preferred_station must be between {_STATION_MIN} and {_STATION_MAX} characters")

    if payload.participation_level not in _LEVELS:
        errors.append(f"participation_level must be one of: {', '.join(sorted(_LEVELS))}")

    if payload.message and len(payload.message.strip()) > _MESSAGE_MAX:
        errors.append(f"message must be less than {_MESSAGE_MAX} characters")
    if payload.source_page and len(payload.source_page) > _SOURCE_PAGE_MAX:
        errors.append(f"source_page must be less than {_SOURCE_PAGE_MAX} characters")

    if payload.privacy_consent is not True:
        errors.append("privacy_consent is required")
    return errors


def sanitize_signup(payload: SignupCreate, now: datetime, retention_days: int = 730) -> dict:
    """Document for insert_one. Call only after validate_signup() returned []."""
    message = (payload.message or "").strip()
    return {
        "name": payload.name.strip(),
        "email": payload.email.strip().lower(),
        "preferred_station": payload.preferred_station.strip(),
        "participation_level": payload.participation_level,
        "message": message or None,
        "newsletter_consent": payload.newsletter_consent,
        "privacy_consent": True,
        "consent_version": CONSENT_VERSION,
        "legal_basis": "consent",
        "source_page": payload.source_page,
        "email_verified": False,
        "created_at": now,
        "expires_at": now + timedelta(days=retention_days),
    }


def next_steps(station: str) -> list[str]:
    return [
        "Check your email for the verification link",
        f"Invite friends who would also leave from {station}",
        "Watch the map: your station gets closer to critical mass with every dreamer",
    ]
