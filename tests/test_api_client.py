"""
test_api_client.py — ApiClient error mapping and end-to-end calls.

Two transports are used:
  - httpx.MockTransport for exact control over status codes and failures
  - httpx.ASGITransport to talk to the real FastAPI app in-process
"""

import httpx
import pytest

from pajama_party.client.api import ApiClient
from pajama_party.client.errors import (
    ApiError,
    NetworkError,
    RateLimitError,
    RequestTimeout,
    ValidationError,
    user_message,
)


def _client(handler) -> ApiClient:
    return ApiClient(base_url="http://test", transport=httpx.MockTransport(handler))


class TestErrorMapping:
    async def test_429_is_rate_limit_error(self):
        api = _client(lambda req: httpx.Response(429, json={"error": "Rate limit exceeded"}, headers={"Retry-After": "30"}))
        with pytest.raises(RateLimitError) as info:
            await api.get_stats()
        assert info.value.retry_after == 30
        assert info.value.status == 429

    async def test_400_is_validation_error_with_details(self):
        body = {"error": "Validation failed", "details": ["dreamer_name is required"]}
        api = _client(lambda req: httpx.Response(400, json=body))
        with pytest.raises(ValidationError) as info:
            await api.submit_dream({})
        assert info.value.message == "Validation failed"
        assert info.value.details == ["dreamer_name is required"]

    async def test_500_is_api_error(self):
        api = _client(lambda req: httpx.Response(500, json={"error": "Failed to load reality data"}))
        with pytest.raises(ApiError) as info:
            await api.get_reality_map()
        assert info.value.status == 500
        assert info.value.message == "Failed to load reality data"

    async def test_non_json_error_body(self):
        api = _client(lambda req: httpx.Response(502, text="<html>Bad gateway</html>"))
        with pytest.raises(ApiError) as info:
            await api.get_stats()
        assert info.value.message == "Request failed with status 502"

    async def test_connect_error_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError) as info:
            await _client(handler).get_stats()
        assert info.value.status == 0

    async def test_timeout_is_request_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RequestTimeout):
            await _client(handler).get_stats()

    async def test_none_params_dropped(self):
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return httpx.Response(200, json={"stations": [], "query": "be", "total": 0})

        await _client(handler).search_stations("be")
        assert seen == [{"q": "be"}]

    async def test_bare_list_station_response_accepted(self):
        station = {"id": "x", "name": "Berlin Hbf", "city": "Berlin", "country": "DE", "coordinates": [13.4, 52.5]}
        api = _client(lambda req: httpx.Response(200, json=[station]))
        stations = await api.search_stations("berlin")
        assert stations[0].name == "Berlin Hbf"


class TestUserMessage:
    def test_network(self):
        assert user_message(NetworkError()) == "Network connection failed. Please check your internet connection."

    def test_rate_limit(self):
        assert user_message(RateLimitError("x")) == "Too many requests. Please wait a moment and try again."

    def test_api_error_message(self):
        assert user_message(ApiError("Database unavailable", status=503)) == "Database unavailable"

    def test_unknown(self):
        assert user_message(RuntimeError("boom")) == "Something went wrong. Please try again."


class TestAgainstApp:
    @pytest.fixture()
    async def app_api(self, fake_db):
        from pajama_party.core.database import get_db
        from pajama_party.main import app

        app.dependency_overrides[get_db] = lambda: fake_db
        api = ApiClient(base_url="http://test", transport=httpx.ASGITransport(app=app))
        yield api
        await api.aclose()
        app.dependency_overrides.clear()

    async def test_submit_then_list(self, app_api):
        response = await app_api.submit_dream(
            {"dreamer_name": "Anna", "origin_station": "Berlin Hauptbahnhof", "destination_city": "Barcelona"}
        )
        assert response.success is True

        page = await app_api.list_dreams()
        assert [d.id for d in page.dreams] == [response.dream.id]

    async def test_server_validation_surfaces_as_validation_error(self, app_api):
        with pytest.raises(ValidationError) as info:
            await app_api.submit_dream({"dreamer_name": "A"})
        assert info.value.message == "Validation failed"
        assert "origin_station is required" in info.value.details

    async def test_reality_map_parses(self, app_api):
        payload = await app_api.get_reality_map()
        assert payload.stations and payload.routes

    async def test_static_reality_is_feature_collection(self, app_api):
        collection = await app_api.get_static_reality()
        assert collection["type"] == "FeatureCollection"
        assert collection["features"]

    async def test_sign_up_for_party(self, app_api):
        payload = {
            "name": "Anna",
            "email": "anna@example.com",
            "preferred_station": "Berlin Hauptbahnhof",
            "privacy_consent": True,
        }
        response = await app_api.sign_up_for_party(payload)
        assert response.success is True
        assert response.signup_id

        with pytest.raises(ApiError) as info:
            await app_api.sign_up_for_party(payload)
        assert info.value.status == 409
        assert info.value.message == "This email address is already registered"
