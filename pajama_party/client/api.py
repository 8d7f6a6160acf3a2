"""
api.py — Async HTTP client for the Pajama Party API.

Thin wrapper around httpx.AsyncClient used by every client-side component
(station search, dream store, stats aggregator, map layer manager,
analytics tracker). It maps transport and HTTP failures onto the
taxonomy in client/errors.py and parses responses into the shared
pydantic models.

The transport is injectable so tests can run against httpx.MockTransport
or the FastAPI app itself (httpx.ASGITransport).
"""

import logging
from typing import Any, Optional

import httpx

from pajama_party.client.errors import (
    ApiError,
    NetworkError,
    RateLimitError,
    RequestTimeout,
    ValidationError,
)
from pajama_party.core.config import settings
from pajama_party.models.dream import DreamListResponse, DreamSubmitResponse
from pajama_party.models.map import RealityMapResponse
from pajama_party.models.place import Place
from pajama_party.models.pyjama_party import SignupResponse
from pajama_party.models.station import StationOut
from pajama_party.models.stats import PlatformStats

logger = logging.getLogger(__name__)


def _error_text(response: httpx.Response) -> tuple[Optional[str], Any]:
    """(error message, details) from a JSON error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None, None
    if not isinstance(body, dict):
        return None, None
    message = body.get("error") or body.get("message") or body.get("detail")
    if message is not None and not isinstance(message, str):
        message = str(message)
    return message, body.get("details")


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("Retry-After")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


class ApiClient:
    """
    One shared httpx.AsyncClient per ApiClient; created on first use so the
    module-level singleton can be imported before an event loop exists.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body, raising an ApiError subclass on failure."""
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        kwargs: dict[str, Any] = {"params": params, "json": json}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._http().request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out: %s", method, path, exc)
            raise RequestTimeout() from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError() from exc

        if response.is_error:
            message, details = _error_text(response)
            status = response.status_code
            logger.info("%s %s → %s %s", method, path, status, message)
            if status == 429:
                raise RateLimitError(message or "Too many requests", _retry_after(response))
            if status in (400, 422):
                raise ValidationError(message or "Invalid request", details, status=status)
            raise ApiError(message or f"Request failed with status {status}", status=status, details=details)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Server returned an invalid response", status=response.status_code) from exc

    # ── Endpoints ─────────────────────────────────────────────────────────────

    async def search_stations(
        self, query: str, country: Optional[str] = None, limit: Optional[int] = None
    ) -> list[StationOut]:
        data = await self.request(
            "GET", "/api/stations/search", params={"q": query, "country": country, "limit": limit}
        )
        # Older deployments answered with a bare list
        items = data.get("stations", []) if isinstance(data, dict) else data
        return [StationOut.model_validate(item) for item in items or []]

    async def list_dreams(
        self,
        limit: int = 100,
        offset: int = 0,
        country: Optional[str] = None,
        station: Optional[str] = None,
    ) -> DreamListResponse:
        data = await self.request(
            "GET",
            "/api/dreams",
            params={"limit": limit, "offset": offset, "country": country, "station": station},
        )
        return DreamListResponse.model_validate(data)

    async def submit_dream(self, payload: dict) -> DreamSubmitResponse:
        data = await self.request("POST", "/api/dreams", json=payload)
        return DreamSubmitResponse.model_validate(data)

    async def sign_up_for_party(self, payload: dict) -> SignupResponse:
        data = await self.request("POST", "/api/pyjama-parties", json=payload)
        return SignupResponse.model_validate(data)

    async def get_stats(self) -> PlatformStats:
        return PlatformStats.model_validate(await self.request("GET", "/api/stats"))

    async def search_places(self, limit: int = 1000, **filters) -> list[Place]:
        data = await self.request("GET", "/api/places/search", params={"limit": limit, **filters})
        return [Place.model_validate(item) for item in data.get("places", [])]

    async def get_reality_map(self, timeout: Optional[float] = None) -> RealityMapResponse:
        data = await self.request("GET", "/api/reality/map", timeout=timeout)
        return RealityMapResponse.model_validate(data)

    async def get_static_reality(self, timeout: Optional[float] = None) -> dict:
        return await self.request("GET", "/reality-network.geojson", timeout=timeout)

    async def get_advocacy(self, route_id: Optional[str] = None, station_id: Optional[str] = None) -> dict:
        return await self.request(
            "GET", "/api/analytics/advocacy", params={"route_id": route_id, "station_id": station_id}
        )

    async def track_event(self, event: str, properties: dict, timestamp: str) -> dict:
        return await self.request(
            "POST",
            "/api/analytics/events",
            json={"event": event, "properties": properties, "timestamp": timestamp},
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Module-level singleton
api_client = ApiClient()
