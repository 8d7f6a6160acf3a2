"""
dream_validation.py — Server-side rules for POST /api/dreams.

Pure functions: no database access, so they are shared by the route and
the seed script and can be unit-tested directly.

USAGE
─────
    from pajama_party.services.dream_validation import validate_dream, sanitize_dream

    errors = validate_dream(payload)          # [] when valid
    if not errors:
        doc = sanitize_dream(payload, now)    # ready for insert_one
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta

from pajama_party.models.dream import DreamCreate

# ── Rules ─────────────────────────────────────────────────────────────────────

_NAME_MIN, _NAME_MAX = 2, 255
_PLACE_MIN, _PLACE_MAX = 2, 255
_EMAIL_MAX = 255

# Letters (including accented Latin), spaces, hyphen, apostrophe, dot
_NAME_PATTERN = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿĀ-ſ\s\-'.]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_LAT_RANGE = (-90.0, 90.0)
_LNG_RANGE = (-180.0, 180.0)

_COORD_DECIMALS = 8


def _check_length(field: str, value: str | None, lo: int, hi: int) -> list[str]:
    if value is None or not value.strip():
        return [f"{field} is required"]
    value = value.strip()
    if len(value) < lo:
        return [f"{field} must be at least {lo} characters"]
    if len(value) > hi:
        return [f"{field} must be less than {hi} characters"]
    return []


def _check_pair(prefix: str, lat: float | None, lng: float | None) -> list[str]:
    if lat is None and lng is None:
        return []
    if lat is None or lng is None:
        return [f"{prefix} coordinates must include both latitude and longitude"]
    errors = []
    if not _LAT_RANGE[0] <= lat <= _LAT_RANGE[1]:
        errors.append(f"{prefix}_lat must be between {_LAT_RANGE[0]:g} and {_LAT_RANGE[1]:g}")
    if not _LNG_RANGE[0] <= lng <= _LNG_RANGE[1]:
        errors.append(f"{prefix}_lng must be between {_LNG_RANGE[0]:g} and {_LNG_RANGE[1]:g}")
    return errors


def validate_dream(payload: DreamCreate) -> list[str]:
    """Return every rule the payload breaks, in field order."""
    errors = _check_length("dreamer_name", payload.dreamer_name, _NAME_MIN, _NAME_MAX)
    if not errors and not _NAME_PATTERN.match(payload.dreamer_name.strip()):
        errors.append("dreamer_name contains invalid characters")

    errors += _check_length("origin_station", payload.origin_station, _PLACE_MIN, _PLACE_MAX)
    errors += _check_length("destination_city", payload.destination_city, _PLACE_MIN, _PLACE_MAX)

    if payload.email and payload.email.strip():
        email = payload.email.strip()
        if len(email) > _EMAIL_MAX:
            errors.append(f"email must be less than {_EMAIL_MAX} characters")
        if not EMAIL_PATTERN.match(email):
            errors.append("email format is invalid")

    errors += _check_pair("origin", payload.origin_lat, payload.origin_lng)
    errors += _check_pair("destination", payload.destination_lat, payload.destination_lng)
    return errors


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, _COORD_DECIMALS)


def _country(value: str | None) -> str | None:
    value = (value or "").strip()
    return value.upper() or None


def sanitize_dream(payload: DreamCreate, now: datetime, ttl_days: int = 30) -> dict:
    """
    Build the MongoDB document for a validated payload.

    Strings are trimmed, countries upper-cased, coordinates rounded to
    8 decimals; expires_at is created_at + ttl_days.
    """
    email = (payload.email or "").strip().lower() or None
    return {
        "dreamer_name": payload.dreamer_name.strip(),
        "origin_station": payload.origin_station.strip(),
        "origin_country": _country(payload.origin_country),
        "origin_lat": _round(payload.origin_lat),
        "origin_lng": _round(payload.origin_lng),
        "destination_city": payload.destination_city.strip(),
        "destination_country": _country(payload.destination_country),
        "destination_lat": _round(payload.destination_lat),
        "destination_lng": _round(payload.destination_lng),
        "email": email,
        "email_verified": False,
        "created_at": now,
        "expires_at": now + timedelta(days=ttl_days),
    }
