"""
test_stats_aggregator.py — Client-side stats polling, growth metrics and trends.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from pajama_party.client.errors import NetworkError
from pajama_party.client.stats import StatsAggregator, compute_trends, format_last_updated, growth_metrics
from pajama_party.models.stats import ActivityPoint, PlatformStats
from tests.fakes import Gate

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


def _stats(total=30, stations=10, communities=4, countries=3, activity=None):
    return PlatformStats(
        total_dreams=total,
        active_stations=stations,
        communities_forming=communities,
        countries_represented=countries,
        recent_activity=activity or [],
        last_updated=NOW,
    )


def _activity(*counts):
    return [ActivityPoint(timeframe=f"2026-05-{10 + i:02d}", dream_count=c) for i, c in enumerate(counts)]


class StubStatsApi:
    def __init__(self):
        self.results: list = []
        self.calls = 0
        self.gates: dict[int, Gate] = {}

    async def get_stats(self):
        self.calls += 1
        call = self.calls
        if call in self.gates:
            await self.gates[call].wait()
        result = self.results[min(call, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


class TestDerivations:
    def test_growth_metrics(self):
        metrics = growth_metrics(_stats())
        assert metrics.avg_dreams_per_station == 3.0
        assert metrics.community_formation_rate == 40
        assert metrics.dreams_per_country == 10.0

    def test_growth_metrics_without_stations(self):
        metrics = growth_metrics(_stats(total=0, stations=0, communities=0, countries=0))
        assert metrics.avg_dreams_per_station == 0
        assert metrics.community_formation_rate == 0

    def test_growing_trend(self):
        trends = compute_trends(_activity(1, 1, 1, 1, 4, 5, 6))
        assert trends.daily_trend == 4.0
        assert trends.weekly_total == 19
        assert trends.is_growing is True

    def test_declining_trend(self):
        trends = compute_trends(_activity(5, 5, 5, 5, 1, 1, 1))
        assert trends.daily_trend == -4.0
        assert trends.is_growing is False

    def test_trend_flat_with_too_little_history(self):
        assert compute_trends(_activity(3)).daily_trend == 0.0
        assert compute_trends(_activity(1, 2, 3)).daily_trend == 0.0

    @pytest.mark.parametrize(
        "age, text",
        [
            (timedelta(seconds=20), "Just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=3), "3 hours ago"),
        ],
    )
    def test_format_last_updated(self, age, text):
        assert format_last_updated(NOW - age, NOW) == text

    def test_format_never(self):
        assert format_last_updated(None) == "Never"


class TestAggregator:
    async def test_refresh_stores_stats(self):
        api = StubStatsApi()
        api.results = [_stats(activity=_activity(1, 1, 1, 1, 4, 5, 6))]
        agg = StatsAggregator(api)
        await agg.refresh()
        assert agg.stats.total_dreams == 30
        assert agg.growth_metrics.community_formation_rate == 40
        assert agg.trends.is_growing is True
        assert agg.is_loading is False

    async def test_failure_keeps_last_good_stats(self):
        api = StubStatsApi()
        api.results = [_stats(total=30), NetworkError()]
        agg = StatsAggregator(api)
        await agg.refresh()
        await agg.refresh()
        assert agg.stats.total_dreams == 30
        assert agg.error == "Network connection failed. Please check your internet connection."

    async def test_newer_refresh_supersedes_inflight(self):
        api = StubStatsApi()
        api.results = [_stats(total=1), _stats(total=2)]
        api.gates[1] = Gate()
        agg = StatsAggregator(api)

        first = asyncio.create_task(agg.refresh())
        while api.calls < 1:             # first fetch is waiting at its gate
            await asyncio.sleep(0)
        await agg.refresh()
        api.gates[1].open()
        await first

        assert agg.stats.total_dreams == 2

    async def test_staleness(self):
        clock = [0.0]
        api = StubStatsApi()
        api.results = [_stats(total=1), _stats(total=2)]
        agg = StatsAggregator(api, refresh_interval=60, clock=lambda: clock[0])
        assert agg.is_stale is True

        await agg.refresh()
        assert agg.is_stale is False

        clock[0] = 30
        await agg.on_visibility_change(True)
        assert api.calls == 1

        clock[0] = 61
        await agg.on_visibility_change(True)
        assert api.calls == 2
        assert agg.cache_age == 0

    async def test_polling_start_stop(self):
        api = StubStatsApi()
        api.results = [_stats()]
        agg = StatsAggregator(api, refresh_interval=0.01)
        agg.start()
        agg.start()
        await asyncio.sleep(0.035)
        await agg.stop()
        calls = api.calls
        assert calls >= 2
        await asyncio.sleep(0.02)
        assert api.calls == calls
