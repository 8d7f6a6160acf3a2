"""
test_dreams.py — Tests for /api/dreams routes.

Uses the shared in-memory FakeDB (tests/fakes.py) so no MongoDB is needed.
"""

from datetime import datetime, timedelta, timezone

import pytest

from tests.fakes import dream_doc

SAMPLE_DREAM = {
    "dreamer_name": "Anna",
    "origin_station": "Berlin Hauptbahnhof",
    "destination_city": "Barcelona",
    "origin_lat": 52.5251,
    "origin_lng": 13.3691,
    "destination_lat": 41.3794,
    "destination_lng": 2.1404,
    "email": "Anna@Example.com",
}


async def _seed(fake_db, *docs):
    for doc in docs:
        await fake_db["dreams"].insert_one(doc)


class TestDreamSubmit:
    async def test_submit_returns_201(self, db_client_with):
        r = await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)
        assert r.status_code == 201

    async def test_submit_response_shape(self, db_client_with):
        data = (await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)).json()
        assert data["success"] is True
        assert data["message"] == "Dream added successfully! Your pajama party adventure awaits!"
        assert len(data["dream"]["id"]) == 24  # ObjectId hex string
        assert data["dream"]["origin_station"] == "Berlin Hauptbahnhof"

    async def test_email_never_returned(self, db_client_with):
        data = (await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)).json()
        assert "email" not in data["dream"]

    async def test_email_stored_lowercased(self, db_client_with, fake_db):
        await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)
        stored = fake_db["dreams"].docs[0]
        assert stored["email"] == "anna@example.com"
        assert stored["email_verified"] is False

    async def test_expires_thirty_days_after_creation(self, db_client_with, fake_db):
        await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)
        stored = fake_db["dreams"].docs[0]
        assert stored["expires_at"] - stored["created_at"] == timedelta(days=30)

    async def test_short_form_field_names_accepted(self, db_client_with):
        body = {"dreamerName": "Jonas", "from": "Wien Hauptbahnhof", "to": "Roma"}
        r = await db_client_with.post("/api/dreams", json=body)
        assert r.status_code == 201
        assert r.json()["dream"]["destination_city"] == "Roma"

    async def test_first_dream_has_no_community_message(self, db_client_with):
        data = (await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)).json()
        assert data["community_message"] is None

    async def test_second_dream_at_station_forms_community(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(name="Berta"))
        data = (await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)).json()
        assert data["community_message"] == (
            "Great! 2 dreamers from Berlin Hauptbahnhof are planning pajama parties! You're not alone!"
        )

    async def test_expired_dreams_do_not_count_towards_community(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(name="Berta", expired=True))
        data = (await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)).json()
        assert data["community_message"] is None

    async def test_community_message_not_stored(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(name="Berta"))
        await db_client_with.post("/api/dreams", json=SAMPLE_DREAM)
        assert all("community_message" not in d for d in fake_db["dreams"].docs)

    async def test_coordinates_filled_from_station_directory(self, db_client_with, fake_db):
        await fake_db["stations"].insert_one({
            "name": "Wien Hauptbahnhof", "city": "Vienna", "country": "AT", "lat": 48.1851, "lng": 16.3721,
        })
        await fake_db["stations"].insert_one({
            "name": "Roma Termini", "city": "Roma", "country": "IT", "lat": 41.9010, "lng": 12.5018,
        })
        body = {"dreamer_name": "Jonas", "origin_station": "wien hauptbahnhof, Austria", "destination_city": "Roma"}
        dream = (await db_client_with.post("/api/dreams", json=body)).json()["dream"]
        assert (dream["origin_lat"], dream["origin_lng"]) == (48.1851, 16.3721)
        assert dream["origin_country"] == "AT"
        assert (dream["destination_lat"], dream["destination_lng"]) == (41.9010, 12.5018)

    async def test_unknown_station_keeps_null_coordinates(self, db_client_with):
        body = {"dreamer_name": "Jonas", "origin_station": "Nowhere Central", "destination_city": "Atlantis"}
        dream = (await db_client_with.post("/api/dreams", json=body)).json()["dream"]
        assert dream["origin_lat"] is None
        assert dream["destination_lng"] is None


class TestDreamValidation:
    async def test_missing_fields_return_400(self, db_client_with):
        r = await db_client_with.post("/api/dreams", json={})
        assert r.status_code == 400
        body = r.json()
        assert body["error"] == "Validation failed"
        assert body["message"] == "Please check your input data"
        assert "dreamer_name is required" in body["details"]
        assert "origin_station is required" in body["details"]
        assert "destination_city is required" in body["details"]

    async def test_invalid_email_rejected(self, db_client_with):
        r = await db_client_with.post("/api/dreams", json={**SAMPLE_DREAM, "email": "not-an-email"})
        assert r.status_code == 400
        assert "email format is invalid" in r.json()["details"]

    async def test_half_coordinate_pair_rejected(self, db_client_with):
        body = {**SAMPLE_DREAM}
        del body["origin_lng"]
        r = await db_client_with.post("/api/dreams", json=body)
        assert r.status_code == 400
        assert "origin coordinates must include both latitude and longitude" in r.json()["details"]

    async def test_nothing_stored_on_validation_failure(self, db_client_with, fake_db):
        await db_client_with.post("/api/dreams", json={"dreamer_name": "A"})
        assert fake_db["dreams"].docs == []

    async def test_wrong_type_is_request_validation_error(self, db_client_with):
        r = await db_client_with.post("/api/dreams", json={**SAMPLE_DREAM, "origin_lat": "north"})
        assert r.status_code == 422
        body = r.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == "origin_lat"

    async def test_submit_without_database_returns_503(self, client):
        r = await client.post("/api/dreams", json=SAMPLE_DREAM)
        assert r.status_code == 503
        assert r.json()["error"] == "Database unavailable"


class TestDreamList:
    async def test_list_empty_without_database(self, client):
        data = (await client.get("/api/dreams")).json()
        assert data == {"dreams": [], "total": 0, "limit": 100, "offset": 0, "has_more": False}

    async def test_list_excludes_expired(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(name="Anna"), dream_doc(name="Berta", expired=True))
        data = (await db_client_with.get("/api/dreams")).json()
        assert data["total"] == 1
        assert [d["dreamer_name"] for d in data["dreams"]] == ["Anna"]

    async def test_list_newest_first(self, db_client_with, fake_db):
        now = datetime.now(timezone.utc)
        await _seed(
            fake_db,
            dream_doc(name="Older", created_at=now - timedelta(days=2)),
            dream_doc(name="Newer", created_at=now - timedelta(minutes=5)),
        )
        data = (await db_client_with.get("/api/dreams")).json()
        assert [d["dreamer_name"] for d in data["dreams"]] == ["Newer", "Older"]

    async def test_list_never_exposes_email(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(email="anna@example.com"))
        dream = (await db_client_with.get("/api/dreams")).json()["dreams"][0]
        assert "email" not in dream

    async def test_pagination_has_more(self, db_client_with, fake_db):
        await _seed(fake_db, *[dream_doc(name=f"Dreamer {c}") for c in "ABCDE"])
        data = (await db_client_with.get("/api/dreams", params={"limit": 2, "offset": 2})).json()
        assert len(data["dreams"]) == 2
        assert data["total"] == 5
        assert data["has_more"] is True

        last = (await db_client_with.get("/api/dreams", params={"limit": 2, "offset": 4})).json()
        assert len(last["dreams"]) == 1
        assert last["has_more"] is False

    async def test_limit_capped_at_1000(self, db_client_with):
        data = (await db_client_with.get("/api/dreams", params={"limit": 5000})).json()
        assert data["limit"] == 1000

    async def test_filter_by_country(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(country="DE"), dream_doc(origin="Paris Est", country="FR"))
        data = (await db_client_with.get("/api/dreams", params={"country": "fr"})).json()
        assert [d["origin_station"] for d in data["dreams"]] == ["Paris Est"]

    async def test_filter_by_station_substring(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(), dream_doc(origin="Paris Est"))
        data = (await db_client_with.get("/api/dreams", params={"station": "berlin"})).json()
        assert [d["origin_station"] for d in data["dreams"]] == ["Berlin Hauptbahnhof"]


class TestAggregatedByStation:
    async def test_default_min_dreams_is_two(self, db_client_with, fake_db):
        await _seed(
            fake_db,
            dream_doc(), dream_doc(name="Berta"),
            dream_doc(origin="Paris Est"),
        )
        data = (await db_client_with.get("/api/dreams/aggregated-by-station")).json()
        assert [s["station"] for s in data["stations"]] == ["Berlin Hauptbahnhof"]
        assert data["stations"][0]["dreamCount"] == 2

    async def test_min_dreams_query_param(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(), dream_doc(origin="Paris Est"))
        data = (await db_client_with.get("/api/dreams/aggregated-by-station", params={"minDreams": 1})).json()
        assert data["summary"]["totalStations"] == 2
        assert data["summary"]["totalDreams"] == 2

    async def test_readiness_fields_present(self, db_client_with, fake_db):
        await _seed(fake_db, dream_doc(), dream_doc(name="Berta"))
        station = (await db_client_with.get("/api/dreams/aggregated-by-station")).json()["stations"][0]
        for key in ("readinessLevel", "readinessScore", "pajamaPartyPotential", "recentDreams", "coordinates"):
            assert key in station
        assert station["coordinates"] == [13.3691, 52.5251]
        assert station["readinessLevel"] == "low"

    async def test_empty_without_database(self, client):
        data = (await client.get("/api/dreams/aggregated-by-station")).json()
        assert data["stations"] == []
        assert data["summary"]["readyPercentage"] == 0
