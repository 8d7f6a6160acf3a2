"""
test_stats_compiler.py — Unit tests for compile_stats() and StatsCache.
"""

from datetime import datetime, timedelta, timezone

from pajama_party.services.stats_compiler import StatsCache, compile_stats

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


def _doc(origin, destination, country="DE", hours_ago=1):
    return {
        "origin_station": origin,
        "destination_city": destination,
        "origin_country": country,
        "created_at": NOW - timedelta(hours=hours_ago),
    }


class TestCompileStats:
    def test_empty(self):
        stats = compile_stats([], NOW)
        assert stats.total_dreams == 0
        assert stats.top_destinations == []
        assert [p.dream_count for p in stats.recent_activity] == [0] * 7
        assert stats.last_updated == NOW

    def test_totals(self):
        docs = [_doc("Berlin", "Roma"), _doc("Berlin", "Paris"), _doc("Wien", "Roma", "AT")]
        stats = compile_stats(docs, NOW)
        assert stats.total_dreams == 3
        assert stats.active_stations == 2
        assert stats.communities_forming == 1
        assert stats.countries_represented == 2

    def test_top_destinations_ordered_and_capped(self):
        docs = [_doc("Berlin", f"City {i}") for i in range(15)] + [_doc("Berlin", "Roma")] * 3
        stats = compile_stats(docs, NOW)
        assert len(stats.top_destinations) == 10
        assert stats.top_destinations[0].city == "Roma"
        assert stats.top_destinations[0].count == 3

    def test_today_and_week_windows(self):
        docs = [
            _doc("A", "B", hours_ago=1),        # today
            _doc("A", "B", hours_ago=13),       # yesterday
            _doc("A", "B", hours_ago=24 * 8),   # outside the week
        ]
        stats = compile_stats(docs, NOW)
        assert stats.dreams_today == 1
        assert stats.dreams_this_week == 2

    def test_recent_activity_zero_filled_ascending(self):
        docs = [_doc("A", "B", hours_ago=1), _doc("A", "B", hours_ago=49)]
        activity = compile_stats(docs, NOW).recent_activity
        assert [p.timeframe for p in activity] == [
            (NOW - timedelta(days=d)).date().isoformat() for d in range(6, -1, -1)
        ]
        assert activity[-1].dream_count == 1
        assert activity[-3].dream_count == 1
        assert sum(p.dream_count for p in activity) == 2

    def test_country_names(self):
        stats = compile_stats([_doc("Wien", "Roma", "AT")], NOW, {"AT": "Austria"})
        assert stats.geographic_distribution[0].country_name == "Austria"


class TestStatsCache:
    def test_expires_after_ttl(self):
        clock = [0.0]
        cache = StatsCache(ttl_seconds=300, clock=lambda: clock[0])
        stats = compile_stats([], NOW)
        cache.set(stats)

        clock[0] = 299
        assert cache.get() is stats
        clock[0] = 300
        assert cache.get() is None

    def test_clear(self):
        cache = StatsCache(ttl_seconds=300)
        cache.set(compile_stats([], NOW))
        cache.clear()
        assert cache.get() is None
