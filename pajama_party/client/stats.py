"""
stats.py — Polling aggregator for community statistics.

StatsAggregator fetches GET /api/stats every refresh_interval seconds
(60 by default) and derives growth metrics and activity trends from the
last good payload. A failed refresh keeps the previous stats on screen
and only sets `error`.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from pajama_party.client.api import ApiClient, api_client
from pajama_party.client.errors import ApiError, user_message
from pajama_party.core.config import settings
from pajama_party.models.stats import ActivityPoint, GrowthMetrics, PlatformStats, StatsTrends

logger = logging.getLogger(__name__)

_RECENT_POINTS = 3


# ── Pure derivations ──────────────────────────────────────────────────────────

def growth_metrics(stats: PlatformStats) -> GrowthMetrics:
    active = stats.active_stations
    countries = stats.countries_represented
    return GrowthMetrics(
        avg_dreams_per_station=round(stats.total_dreams / active, 1) if active else 0.0,
        community_formation_rate=round(stats.communities_forming / active * 100) if active else 0,
        dreams_per_country=round(stats.total_dreams / countries, 1) if countries else 0.0,
    )


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_trends(activity: Iterable[ActivityPoint]) -> StatsTrends:
    """
    Compare the average of the last three points with the average of the
    ones before them. With nothing before them the trend is flat.
    """
    points = sorted(activity, key=lambda p: p.timeframe)
    weekly_total = sum(p.dream_count for p in points)
    if len(points) < 2:
        return StatsTrends(daily_trend=0.0, weekly_total=weekly_total, is_growing=False)

    recent = [p.dream_count for p in points[-_RECENT_POINTS:]]
    earlier = [p.dream_count for p in points[:-_RECENT_POINTS]]
    recent_avg = _mean(recent)
    earlier_avg = _mean(earlier) if earlier else recent_avg
    daily_trend = round(recent_avg - earlier_avg, 1)
    return StatsTrends(daily_trend=daily_trend, weekly_total=weekly_total, is_growing=daily_trend > 0)


def format_last_updated(last_updated: Optional[datetime], now: Optional[datetime] = None) -> str:
    if last_updated is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    seconds = (now - last_updated).total_seconds()
    if seconds < 60:
        return "Just now"
    minutes = int(seconds // 60)
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    return last_updated.strftime("%d %b %Y, %H:%M")


# ── Aggregator ────────────────────────────────────────────────────────────────

class StatsAggregator:
    def __init__(
        self,
        api: Optional[ApiClient] = None,
        *,
        refresh_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = api or api_client
        self.refresh_interval = (
            settings.stats_refresh_seconds if refresh_interval is None else refresh_interval
        )
        self._clock = clock

        self.stats: Optional[PlatformStats] = None
        self.is_loading = False
        self.error: Optional[str] = None
        self.fetched_at: Optional[float] = None

        self._inflight: Optional[asyncio.Task] = None
        self._poller: Optional[asyncio.Task] = None

    # ── Derived views (last good payload only) ────────────────────────────────

    @property
    def growth_metrics(self) -> Optional[GrowthMetrics]:
        return growth_metrics(self.stats) if self.stats else None

    @property
    def trends(self) -> Optional[StatsTrends]:
        return compute_trends(self.stats.recent_activity) if self.stats else None

    @property
    def cache_age(self) -> Optional[float]:
        return None if self.fetched_at is None else self._clock() - self.fetched_at

    @property
    def is_stale(self) -> bool:
        age = self.cache_age
        return age is None or age > self.refresh_interval

    @property
    def formatted_last_updated(self) -> str:
        return format_last_updated(self.stats.last_updated if self.stats else None)

    # ── Refresh ───────────────────────────────────────────────────────────────

    async def refresh(self) -> None:
        """Fetch now. A newer refresh cancels one still in flight."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        task = asyncio.get_running_loop().create_task(self._fetch())
        self._inflight = task
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # superseded by a newer refresh

    async def _fetch(self) -> None:
        self.is_loading = True
        try:
            stats = await self.api.get_stats()
        except ApiError as exc:
            self.error = user_message(exc)
        except Exception as exc:
            logger.error("Stats refresh failed: %s", exc)
            self.error = "Failed to load statistics"
        else:
            self.stats = stats
            self.error = None
            self.fetched_at = self._clock()
        finally:
            if self._inflight is asyncio.current_task():
                self.is_loading = False

    async def on_visibility_change(self, visible: bool) -> None:
        """Refresh when the view becomes visible again with stale data."""
        if visible and self.is_stale:
            await self.refresh()

    def start(self) -> None:
        """Begin polling. Idempotent."""
        if self._poller is None or self._poller.done():
            self._poller = asyncio.get_running_loop().create_task(self._poll())

    async def _poll(self) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(self.refresh_interval)

    async def stop(self) -> None:
        for task in (self._poller, self._inflight):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._poller = None
        self._inflight = None
        self.is_loading = False
