"""
test_dream_store.py — Optimistic submission and reconciliation in DreamStore.

A stub API stands in for ApiClient so tests can hold a submission open
(Gate) and look at the store while the request is still in flight.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from pajama_party.client.dreams import DreamStore, SubmissionState, is_optimistic, validate_draft
from pajama_party.client.errors import ApiError, NetworkError, ValidationError
from pajama_party.models.dream import DreamDraft, DreamListResponse, DreamSubmitResponse
from pajama_party.models.pyjama_party import SignupResponse
from tests.fakes import Gate, make_dream


class StubDreamApi:
    def __init__(self, dreams=None):
        self.dreams = list(dreams or [])
        self.payloads: list[dict] = []
        self.gate: Gate | None = None
        self.submit_error: Exception | None = None
        self.list_error: Exception | None = None
        self.list_gate: Gate | None = None
        self.list_calls = 0
        self.community_message = None
        self.signups: list[dict] = []
        self.signup_error: Exception | None = None

    async def list_dreams(self, limit=100, offset=0, country=None, station=None):
        self.list_calls += 1
        if self.list_gate:
            await self.list_gate.wait()
        if self.list_error:
            raise self.list_error
        page = self.dreams[offset:offset + limit]
        return DreamListResponse(
            dreams=page,
            total=len(self.dreams),
            limit=limit,
            offset=offset,
            has_more=offset + len(page) < len(self.dreams),
        )

    async def submit_dream(self, payload):
        self.payloads.append(payload)
        if self.gate:
            await self.gate.wait()
        if self.submit_error:
            raise self.submit_error
        dream = make_dream(
            f"server-{len(self.payloads)}",
            origin=payload["origin_station"],
            destination=payload["destination_city"],
            name=payload["dreamer_name"],
        )
        self.dreams.insert(0, dream)
        return DreamSubmitResponse(
            dream=dream,
            community_message=self.community_message,
            timestamp=datetime.now(timezone.utc),
        )

    async def sign_up_for_party(self, payload):
        self.signups.append(payload)
        if self.signup_error:
            raise self.signup_error
        return SignupResponse(signup_id=f"signup-{len(self.signups)}", timestamp=datetime.now(timezone.utc))


DRAFT = DreamDraft(
    dreamer_name="Anna",
    origin_station="Berlin Hauptbahnhof",
    origin_lat=52.5251,
    origin_lng=13.3691,
    destination_city="Barcelona",
)


@pytest.fixture()
def api():
    return StubDreamApi([make_dream(f"d{i}", name=f"Dreamer {i}") for i in range(3)])


@pytest.fixture()
async def store(api):
    s = DreamStore(api, clock=lambda: 1_700_000_000.0)
    await s.load()
    return s


class TestLoading:
    async def test_load(self, store):
        assert [d.id for d in store.dreams] == ["d0", "d1", "d2"]
        assert store.total == 3
        assert store.has_more is False

    async def test_load_more_appends(self, api):
        s = DreamStore(api, page_size=2)
        await s.load()
        assert s.has_more is True
        await s.load_more()
        assert [d.id for d in s.dreams] == ["d0", "d1", "d2"]
        assert s.has_more is False

    async def test_load_failure_sets_error(self, api):
        api.list_error = NetworkError()
        s = DreamStore(api)
        await s.load()
        assert s.dreams == []
        assert s.error == "Network connection failed. Please check your internet connection."

    async def test_subscribers_notified(self, api):
        seen = []
        s = DreamStore(api)
        unsubscribe = s.subscribe(lambda dreams: seen.append(len(dreams)))
        await s.load()
        unsubscribe()
        await s.load()
        assert seen == [3]


class TestOptimisticSubmit:
    async def test_temp_dream_visible_while_request_in_flight(self, store, api):
        baseline = len(store.dreams)
        api.gate = Gate()

        task = asyncio.create_task(store.submit(DRAFT))
        await asyncio.sleep(0)

        assert len(store.dreams) == baseline + 1
        assert store.dreams[0].id == "temp-1700000000000"
        assert is_optimistic(store.dreams[0])
        assert store.state is SubmissionState.OPTIMISTIC
        assert store.is_submitting is True

        api.gate.open()
        result = await task
        assert result.success is True

    async def test_reconciled_list_has_no_temp_entry(self, store, api):
        baseline = len(store.dreams)
        await store.submit(DRAFT)

        assert len(store.dreams) == baseline + 1
        assert not any(is_optimistic(d) for d in store.dreams)
        assert store.dreams[0].id == "server-1"
        assert store.state is SubmissionState.RECONCILED
        assert store.is_submitting is False

    async def test_refetch_failure_keeps_server_dream(self, store, api):
        baseline = len(store.dreams)
        api.gate = Gate()
        task = asyncio.create_task(store.submit(DRAFT))
        await asyncio.sleep(0)
        api.list_error = NetworkError()
        api.gate.open()
        await task

        assert len(store.dreams) == baseline + 1
        assert store.dreams[0].id == "server-1"
        assert store.state is SubmissionState.RECONCILED

    async def test_failure_rolls_back(self, store, api):
        baseline = [d.id for d in store.dreams]
        api.submit_error = ApiError("Database unavailable", status=503)

        result = await store.submit(DRAFT)

        assert result.success is False
        assert [d.id for d in store.dreams] == baseline
        assert store.state is SubmissionState.ROLLED_BACK
        assert store.submit_error == "Database unavailable"

    async def test_server_validation_details_reported(self, store, api):
        api.submit_error = ValidationError("Validation failed", ["dreamer_name contains invalid characters"])
        result = await store.submit(DRAFT)
        assert result.field_errors == {"form": "dreamer_name contains invalid characters"}

    async def test_cancelled_submit_rolls_back(self, store, api):
        baseline = len(store.dreams)
        api.gate = Gate()
        task = asyncio.create_task(store.submit(DRAFT))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(store.dreams) == baseline
        assert store.state is SubmissionState.ROLLED_BACK

    async def test_cancelled_refetch_keeps_server_dream(self, store, api):
        api.list_gate = Gate()
        task = asyncio.create_task(store.submit(DRAFT))
        while api.list_calls < 2:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not any(is_optimistic(d) for d in store.dreams)
        assert store.dreams[0].id == "server-1"
        assert store.state is SubmissionState.RECONCILED
        assert store.is_submitting is False

    async def test_submission_is_not_retried(self, store, api):
        api.submit_error = NetworkError()
        await store.submit(DRAFT)
        assert len(api.payloads) == 1

    async def test_payload_strips_form_flags(self, store, api):
        await store.submit(DRAFT.model_copy(update={"join_pyjama_party": False, "email": ""}))
        assert "join_pyjama_party" not in api.payloads[0]
        assert "email" not in api.payloads[0]
        assert "participation_level" not in api.payloads[0]
        assert "privacy_consent" not in api.payloads[0]
        assert api.payloads[0]["origin_lat"] == 52.5251

    async def test_community_message_returned_once(self, store, api):
        api.community_message = "Great! 2 dreamers from Berlin Hauptbahnhof are planning pajama parties! You're not alone!"
        result = await store.submit(DRAFT)
        assert result.community_message == api.community_message
        assert store.take_community_message() == api.community_message
        assert store.take_community_message() is None


class TestDraftValidation:
    async def test_invalid_draft_never_sent(self, store, api):
        result = await store.submit(DreamDraft(dreamer_name="Anna"))
        assert result.success is False
        assert set(result.field_errors) == {"origin_station", "destination_city"}
        assert api.payloads == []

    def test_email_required_to_join_party(self):
        draft = DRAFT.model_copy(update={"join_pyjama_party": True, "privacy_consent": True})
        assert validate_draft(draft) == {"email": "Email is required to join a pyjama party"}

    def test_privacy_consent_required_to_join_party(self):
        draft = DRAFT.model_copy(update={"join_pyjama_party": True, "email": "anna@example.com"})
        assert validate_draft(draft) == {"privacy_consent": "Please accept the privacy policy to join a pyjama party"}

    def test_email_format(self):
        draft = DRAFT.model_copy(update={"email": "anna@"})
        assert validate_draft(draft) == {"email": "Please enter a valid email address"}

    def test_privacy_consent_only_when_required(self):
        assert validate_draft(DRAFT) == {}
        assert "privacy_consent" in validate_draft(DRAFT, require_privacy_consent=True)


JOINING = DRAFT.model_copy(update={
    "join_pyjama_party": True,
    "email": "anna@example.com",
    "privacy_consent": True,
    "participation_level": "volunteer",
})


class TestJoiningPyjamaParty:
    async def test_joining_posts_signup(self, store, api):
        result = await store.submit(JOINING)
        assert result.success is True
        assert result.signup_id == "signup-1"
        assert result.signup_error is None
        signup = api.signups[0]
        assert signup["preferred_station"] == "Berlin Hauptbahnhof"
        assert signup["email"] == "anna@example.com"
        assert signup["participation_level"] == "volunteer"
        assert signup["privacy_consent"] is True

    async def test_signup_sent_after_dream_stored(self, store, api):
        await store.submit(JOINING)
        assert len(api.payloads) == 1
        assert store.dreams[0].id == "server-1"

    async def test_signup_failure_keeps_dream(self, store, api):
        api.signup_error = ApiError("This email address is already registered", status=409)
        result = await store.submit(JOINING)
        assert result.success is True
        assert result.signup_id is None
        assert result.signup_error == "This email address is already registered"
        assert store.dreams[0].id == "server-1"
        assert store.state is SubmissionState.RECONCILED

    async def test_unexpected_signup_failure_reported(self, store, api):
        api.signup_error = RuntimeError("boom")
        result = await store.submit(JOINING)
        assert result.success is True
        assert result.signup_error.startswith("Your dream was saved")

    async def test_no_signup_without_joining(self, store, api):
        result = await store.submit(DRAFT)
        assert api.signups == []
        assert result.signup_id is None

    async def test_no_signup_when_dream_fails(self, store, api):
        api.submit_error = NetworkError()
        result = await store.submit(JOINING)
        assert result.success is False
        assert api.signups == []
