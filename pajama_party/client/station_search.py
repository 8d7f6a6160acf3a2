"""
station_search.py — Debounced, cached station autocomplete.

    search = StationSearch(api_client)
    search.search("ber")          # schedules a fetch 300 ms later
    search.search("berl")         # cancels the pending/in-flight fetch, reschedules
    await search.settle()         # wait for whatever is pending
    search.stations               # → [StationOut(...), ...]

Rules:
  - queries shorter than min_length (2) clear the results synchronously
    and never reach the network
  - results are cached per (query, country, limit) for cache_ttl seconds,
    at most cache_size entries, oldest evicted first
  - a newer query cancels the previous task, and a response belonging to
    an older query is never applied
  - failures set `error` and empty the results; there is no retry
"""

import asyncio
import json
import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

from pajama_party.client.api import ApiClient, api_client
from pajama_party.client.errors import ApiError, user_message
from pajama_party.core.config import settings
from pajama_party.models.station import StationOut

logger = logging.getLogger(__name__)

_SUGGESTION_COUNT = 5


def cache_key(query: str, country: Optional[str], limit: Optional[int]) -> str:
    return json.dumps([query.lower().strip(), (country or "").upper(), limit])


class StationSearch:
    def __init__(
        self,
        api: Optional[ApiClient] = None,
        *,
        debounce: Optional[float] = None,
        min_length: Optional[int] = None,
        cache_ttl: Optional[float] = None,
        cache_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        on_change: Optional[Callable[["StationSearch"], None]] = None,
    ) -> None:
        self.api = api or api_client
        self.debounce = settings.search_debounce_ms / 1000 if debounce is None else debounce
        self.min_length = settings.search_min_query_length if min_length is None else min_length
        self.cache_ttl = settings.search_cache_ttl_seconds if cache_ttl is None else cache_ttl
        self.cache_size = settings.search_cache_size if cache_size is None else cache_size
        self._clock = clock
        self._on_change = on_change

        self.query = ""
        self.stations: list[StationOut] = []
        self.is_loading = False
        self.error: Optional[str] = None

        self._cache: OrderedDict[str, tuple[float, list[StationOut]]] = OrderedDict()
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    # ── Public API ────────────────────────────────────────────────────────────

    def search(self, query: str, country: Optional[str] = None, limit: Optional[int] = None) -> None:
        """Debounced search. Must be called from inside the running event loop."""
        self._start(query, country, limit, delay=self.debounce)

    async def search_immediate(
        self, query: str, country: Optional[str] = None, limit: Optional[int] = None
    ) -> list[StationOut]:
        """Search without the debounce delay and wait for the result."""
        self._start(query, country, limit, delay=0)
        await self.settle()
        return self.stations

    async def settle(self) -> None:
        """Wait until the current task (if any) has finished or been cancelled."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # superseded by a newer query

    def clear(self) -> None:
        self._cancel()
        self.query = ""
        self._set(stations=[], error=None, loading=False)

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def suggestions(self) -> list[StationOut]:
        return self.stations[:_SUGGESTION_COUNT]

    @property
    def cache_stats(self) -> dict:
        now = self._clock()
        valid = sum(1 for stored, _ in self._cache.values() if now - stored < self.cache_ttl)
        return {"total": len(self._cache), "valid": valid, "expired": len(self._cache) - valid}

    def close(self) -> None:
        self._cancel()

    # ── Internals ─────────────────────────────────────────────────────────────

    def _start(self, query: str, country: Optional[str], limit: Optional[int], delay: float) -> None:
        self._cancel()
        self.query = query
        if len(query.strip()) < self.min_length:
            self._set(stations=[], error=None, loading=False)
            return

        key = cache_key(query, country, limit)
        cached = self._cache_get(key)
        if cached is not None:
            self._set(stations=cached, error=None, loading=False)
            return

        self._generation += 1
        generation = self._generation
        self._task = asyncio.get_running_loop().create_task(
            self._run(query.strip(), country, limit, key, delay, generation)
        )

    async def _run(
        self,
        query: str,
        country: Optional[str],
        limit: Optional[int],
        key: str,
        delay: float,
        generation: int,
    ) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        self._set(loading=True)
        try:
            results = await self.api.search_stations(query, country=country, limit=limit)
        except ApiError as exc:
            if generation == self._generation:
                self._set(stations=[], error=user_message(exc), loading=False)
            return
        except Exception as exc:
            logger.error("Station search for %r failed: %s", query, exc)
            if generation == self._generation:
                self._set(stations=[], error="Failed to search stations", loading=False)
            return

        self._cache_put(key, results)
        if generation == self._generation:
            self._set(stations=results, error=None, loading=False)

    def _cancel(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.is_loading = False

    def _cache_get(self, key: str) -> Optional[list[StationOut]]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        stored, results = entry
        if self._clock() - stored >= self.cache_ttl:
            del self._cache[key]
            return None
        return results

    def _cache_put(self, key: str, results: list[StationOut]) -> None:
        self._cache.pop(key, None)
        self._cache[key] = (self._clock(), results)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    _UNSET = object()

    def _set(self, stations=_UNSET, error=_UNSET, loading=_UNSET) -> None:
        if stations is not self._UNSET:
            self.stations = stations
        if error is not self._UNSET:
            self.error = error
        if loading is not self._UNSET:
            self.is_loading = loading
        if self._on_change is not None:
            self._on_change(self)
