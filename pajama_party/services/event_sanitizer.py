"""
event_sanitizer.py — Clean consented analytics events before storage.

Clients only send events after the person opted in; the server still
trims everything to bounded sizes and refuses timestamps that are
obviously wrong (older than an hour, or more than a minute ahead).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pajama_party.models.analytics import AnalyticsEventIn

_MAX_EVENT_NAME = 100
_MAX_PROPERTY_KEY = 50
_MAX_STRING_VALUE = 200
_MAX_PROPERTIES = 30
_PAST_WINDOW = timedelta(hours=1)
_FUTURE_SKEW = timedelta(minutes=1)
EVENT_TTL = timedelta(days=30)


class InvalidEventError(ValueError):
    pass


def sanitize_properties(properties: dict) -> dict:
    """Keep short keys with string (truncated), numeric or boolean values."""
    clean = {}
    for key, value in list(properties.items())[:_MAX_PROPERTIES]:
        if not isinstance(key, str) or not key or len(key) > _MAX_PROPERTY_KEY:
            continue
        if isinstance(value, bool) or isinstance(value, (int, float)):
            clean[key] = value
        elif isinstance(value, str):
            clean[key] = value[:_MAX_STRING_VALUE]
    return clean


def sanitize_event(payload: AnalyticsEventIn, now: datetime) -> dict:
    """Return the document to store, or raise InvalidEventError."""
    name = payload.event.strip()[:_MAX_EVENT_NAME]
    if not name:
        raise InvalidEventError("event name is required")

    ts = payload.timestamp or now
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    if ts < now - _PAST_WINDOW or ts > now + _FUTURE_SKEW:
        raise InvalidEventError("timestamp is outside the accepted window")

    return {
        "event": name,
        "properties": sanitize_properties(payload.properties),
        "timestamp": ts,
        "created_at": now,
        "expires_at": now + EVENT_TTL,
    }
