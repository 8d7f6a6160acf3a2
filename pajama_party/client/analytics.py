"""
analytics.py — Consent-gated client analytics.

The consent flag is the only state the client keeps across sessions. It
is stored as a tiny JSON file:

    {"analytics": true, "updated_at": "2026-05-01T10:00:00+00:00"}

AnalyticsTracker.track() does nothing at all (no network call) until
consent has been granted, and never raises: analytics must not break the
page that calls it.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pajama_party.client.api import ApiClient, api_client
from pajama_party.client.errors import ApiError

logger = logging.getLogger(__name__)

DEFAULT_CONSENT_PATH = Path.home() / ".pajama_party" / "consent.json"


class ConsentStore:
    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else DEFAULT_CONSENT_PATH

    def get(self) -> Optional[bool]:
        """True / False once decided, None while the person hasn't chosen."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unreadable consent file %s: %s", self.path, exc)
            return None
        value = data.get("analytics") if isinstance(data, dict) else None
        return value if isinstance(value, bool) else None

    def set(self, granted: bool) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"analytics": granted, "updated_at": datetime.now(timezone.utc).isoformat()}
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    @property
    def granted(self) -> bool:
        return self.get() is True


class AnalyticsTracker:
    def __init__(self, consent: ConsentStore, api: Optional[ApiClient] = None) -> None:
        self.consent = consent
        self.api = api or api_client

    async def track(self, event: str, properties: Optional[dict] = None) -> bool:
        """Send one event. Returns True only when the server accepted it."""
        if not self.consent.granted:
            return False
        try:
            await self.api.track_event(
                event, properties or {}, datetime.now(timezone.utc).isoformat()
            )
        except ApiError as exc:
            logger.debug("Analytics event %r dropped: %s", event, exc.message)
            return False
        return True
