"""
test_analytics_client.py — Consent storage and consent-gated tracking.
"""

import json

import httpx
import pytest

from pajama_party.client.analytics import AnalyticsTracker, ConsentStore
from pajama_party.client.api import ApiClient


@pytest.fixture()
def consent(tmp_path):
    return ConsentStore(tmp_path / "consent.json")


@pytest.fixture()
async def recorded():
    requests: list[httpx.Request] = []
    status = {"code": 201}

    def handler(request):
        requests.append(request)
        return httpx.Response(status["code"], json={"success": True, "stored": True})

    api = ApiClient(base_url="http://test", transport=httpx.MockTransport(handler))
    yield api, requests, status
    await api.aclose()


class TestConsentStore:
    def test_undecided_by_default(self, consent):
        assert consent.get() is None
        assert consent.granted is False

    def test_set_and_get(self, consent):
        consent.set(True)
        assert consent.get() is True
        data = json.loads(consent.path.read_text())
        assert data["analytics"] is True
        assert "updated_at" in data

    def test_declined(self, consent):
        consent.set(False)
        assert consent.get() is False
        assert consent.granted is False

    def test_corrupt_file_is_undecided(self, consent):
        consent.path.write_text("{not json")
        assert consent.get() is None


class TestTracker:
    async def test_no_network_call_without_consent(self, consent, recorded):
        api, requests, _ = recorded
        tracker = AnalyticsTracker(consent, api)
        assert await tracker.track("page_view") is False
        assert requests == []

    async def test_no_network_call_after_decline(self, consent, recorded):
        api, requests, _ = recorded
        consent.set(False)
        assert await AnalyticsTracker(consent, api).track("page_view") is False
        assert requests == []

    async def test_sends_event_with_consent(self, consent, recorded):
        api, requests, _ = recorded
        consent.set(True)
        assert await AnalyticsTracker(consent, api).track("layer_switched", {"to": "reality"}) is True

        body = json.loads(requests[0].content)
        assert requests[0].url.path == "/api/analytics/events"
        assert body["event"] == "layer_switched"
        assert body["properties"] == {"to": "reality"}
        assert "timestamp" in body

    async def test_server_error_is_swallowed(self, consent, recorded):
        api, _, status = recorded
        consent.set(True)
        status["code"] = 500
        assert await AnalyticsTracker(consent, api).track("page_view") is False
