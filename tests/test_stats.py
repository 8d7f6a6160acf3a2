"""
test_stats.py — Tests for GET /api/stats (compiled community statistics).
"""

import pytest

from tests.fakes import dream_doc


async def _seed(fake_db):
    for doc in (
        dream_doc(name="Anna"),
        dream_doc(name="Berta", destination="Roma"),
        dream_doc(name="Clara", origin="Paris Est", country="FR"),
        dream_doc(name="Dora", expired=True),
    ):
        await fake_db["dreams"].insert_one(doc)
    await fake_db["stations"].insert_one(
        {"name": "Berlin Hauptbahnhof", "country": "DE", "country_name": "Germany", "lat": 52.5, "lng": 13.4}
    )


class TestStats:
    async def test_counts_only_active_dreams(self, db_client_with, fake_db):
        await _seed(fake_db)
        data = (await db_client_with.get("/api/stats")).json()
        assert data["total_dreams"] == 3
        assert data["active_stations"] == 2
        assert data["communities_forming"] == 1
        assert data["countries_represented"] == 2

    async def test_top_lists(self, db_client_with, fake_db):
        await _seed(fake_db)
        data = (await db_client_with.get("/api/stats")).json()
        assert data["top_origin_stations"][0] == {"station": "Berlin Hauptbahnhof", "country": "DE", "count": 2}
        assert data["top_destinations"][0] == {"city": "Barcelona", "count": 2}

    async def test_country_names_from_station_directory(self, db_client_with, fake_db):
        await _seed(fake_db)
        data = (await db_client_with.get("/api/stats")).json()
        names = {c["country"]: c["country_name"] for c in data["geographic_distribution"]}
        assert names == {"DE": "Germany", "FR": "FR"}

    async def test_recent_activity_is_seven_days(self, db_client_with, fake_db):
        await _seed(fake_db)
        activity = (await db_client_with.get("/api/stats")).json()["recent_activity"]
        assert len(activity) == 7
        assert [p["timeframe"] for p in activity] == sorted(p["timeframe"] for p in activity)

    async def test_cache_headers(self, db_client_with, fake_db):
        r = await db_client_with.get("/api/stats")
        assert r.headers["Cache-Control"] == "public, max-age=300, stale-while-revalidate=600"
        assert r.headers["X-Cache"] == "MISS"

    async def test_second_request_is_cache_hit(self, db_client_with, fake_db):
        await _seed(fake_db)
        await db_client_with.get("/api/stats")
        await fake_db["dreams"].insert_one(dream_doc(name="Eva"))

        r = await db_client_with.get("/api/stats")
        assert r.headers["X-Cache"] == "HIT"
        assert r.json()["total_dreams"] == 3

    async def test_cache_clear_recompiles(self, db_client_with, fake_db):
        from pajama_party.routes.stats import stats_cache

        await _seed(fake_db)
        await db_client_with.get("/api/stats")
        await fake_db["dreams"].insert_one(dream_doc(name="Eva"))
        stats_cache.clear()

        data = (await db_client_with.get("/api/stats")).json()
        assert data["total_dreams"] == 4

    async def test_zero_stats_without_database(self, client):
        r = await client.get("/api/stats")
        assert r.status_code == 200
        data = r.json()
        assert data["total_dreams"] == 0
        assert len(data["recent_activity"]) == 7

    async def test_degraded_stats_are_not_cached(self, client):
        from pajama_party.routes.stats import stats_cache

        await client.get("/api/stats")
        assert stats_cache.get() is None

    async def test_query_failure_is_503_and_not_cached(self, db_client_with, fake_db):
        fake_db["dreams"].fail = True
        r = await db_client_with.get("/api/stats")
        assert r.status_code == 503
        assert r.json()["error"] == "Statistics temporarily unavailable"

        fake_db["dreams"].fail = False
        await fake_db["dreams"].insert_one(dream_doc(name="Eva"))
        r = await db_client_with.get("/api/stats")
        assert r.status_code == 200
        assert r.headers["X-Cache"] == "MISS"
        assert r.json()["total_dreams"] == 1
